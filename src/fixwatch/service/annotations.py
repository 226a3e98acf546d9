"""Operator annotations shared by every connected viewer."""

from __future__ import annotations

import copy
import threading
from typing import Dict, Mapping

_SCALAR_TYPES = (str, int, float, bool, type(None))


class AnnotationBoard:
    """Per-aircraft ``{field: value}`` notes; the last writer wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._notes: Dict[str, Dict[str, object]] = {}

    def merge(self, aircraft_id: object, field_name: object, value: object) -> Dict[str, Dict[str, object]]:
        """Apply one edit and return a copy of the whole board."""
        key = str(aircraft_id).strip() if aircraft_id is not None else ""
        name = str(field_name).strip() if field_name is not None else ""
        if not key or not name:
            raise ValueError("Annotation updates need a non-empty id and field")
        if not isinstance(value, _SCALAR_TYPES):
            raise TypeError(f"Annotation value for {key}.{name} must be a scalar")
        with self._lock:
            self._notes.setdefault(key, {})[name] = value
            return copy.deepcopy(self._notes)

    def apply_update(self, payload: object) -> Dict[str, Dict[str, object]]:
        """Merge an ``{id, field, value}`` message from a viewer."""
        if not isinstance(payload, Mapping):
            raise TypeError("Annotation update must be an object with id, field and value")
        return self.merge(payload.get("id"), payload.get("field"), payload.get("value"))

    def snapshot(self) -> Dict[str, Dict[str, object]]:
        with self._lock:
            return copy.deepcopy(self._notes)
