from __future__ import annotations

from dataclasses import asdict, is_dataclass
from typing import Any

from app_orchestrator.core.types import CapabilityRef, Component, Ref


def _normalize(obj: Any) -> Any:
    if isinstance(obj, (Ref, CapabilityRef, Component)):
        return obj.ref
    if hasattr(obj, "value"):
        return obj.value
    if isinstance(obj, dict):
        return {str(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_normalize(v) for v in obj]
    return obj


def to_json_safe(obj: Any) -> Any:
    """
    Convert parameter values into JSON safe values.

    References render in their Kind[title] form.
    """
    if isinstance(obj, (Ref, CapabilityRef, Component)):
        return obj.ref
    if is_dataclass(obj) and not isinstance(obj, type):
        return _normalize(asdict(obj))
    return _normalize(obj)
