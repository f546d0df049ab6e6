"""Serialization of IR objects to JSON-compatible dicts."""

from __future__ import annotations

import json
from dataclasses import fields, is_dataclass

from .ir import IR, Type


def serialize(obj: object) -> object:
    """Recursively serialize an object to a JSON-compatible structure."""
    if obj is None:
        return None
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, (int, float)):
        return obj
    if isinstance(obj, str):
        return obj
    if isinstance(obj, (list, tuple)):
        return [serialize(x) for x in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted(serialize(x) for x in obj)
    if isinstance(obj, dict):
        return {str(k): serialize(v) for k, v in obj.items()}
    return _ir_serialize(obj)


def _ir_serialize(obj: object) -> object:
    """Serialize IR dataclasses; Type nodes drop their empty slots."""
    if isinstance(obj, Type):
        return _serialize_type(obj)
    if is_dataclass(obj) and not isinstance(obj, type):
        d: dict[str, object] = {"_type": type(obj).__name__}
        for f in fields(obj):
            d[f.name] = serialize(getattr(obj, f.name))
        return d
    return "<unserializable>"


def _serialize_type(typ: Type) -> dict[str, object]:
    d: dict[str, object] = {"_type": "Type", "kind": typ.kind, "name": typ.name}
    if typ.is_const:
        d["is_const"] = True
    if not typ.is_mutable:
        d["is_mutable"] = False
    if typ.element_type is not None:
        d["element_type"] = _serialize_type(typ.element_type)
    if typ.template_args:
        d["template_args"] = [_serialize_type(a) for a in typ.template_args]
    if typ.size_bytes:
        d["size_bytes"] = typ.size_bytes
        d["alignment"] = typ.alignment
    return d


def ir_to_json(ir: IR) -> str:
    """Pretty-printed JSON dump of a unit's IR."""
    return json.dumps(serialize(ir), indent=2)
