"""
Evaluation scope.

A Scope is a stack of frames. The bottom frame is created with the scope and
holds top level bindings. Nested evaluations push a frame with guarded and the
frame is popped when the block exits, whether it returned or raised.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

from app_orchestrator.core.errors import UndefinedVariable

log = logging.getLogger("app_orchestrator.language.scope")


class Scope:
    """
    Stack of name bindings.

    Assignments always go to the innermost frame, so bindings made inside a
    guarded block disappear with it.
    """

    def __init__(self, bindings: Optional[Mapping[str, Any]] = None) -> None:
        self._frames: List[Dict[str, Any]] = [dict(bindings or {})]

    @property
    def level(self) -> int:
        """Number of frames, including the bottom frame."""
        return len(self._frames)

    def lookup(self, name: str) -> Any:
        for frame in reversed(self._frames):
            if name in frame:
                return frame[name]
        raise UndefinedVariable(name)

    def __getitem__(self, name: str) -> Any:
        return self.lookup(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._frames[-1][name] = value

    def __contains__(self, name: object) -> bool:
        return any(name in frame for frame in self._frames)

    def as_dict(self) -> Dict[str, Any]:
        """Flatten all frames, inner frames shadowing outer ones."""
        merged: Dict[str, Any] = {}
        for frame in self._frames:
            merged.update(frame)
        return merged

    @contextmanager
    def guarded(self, bindings: Optional[Mapping[str, Any]] = None) -> Iterator["Scope"]:
        """Push a frame for the duration of the with block."""
        memo = self.level
        self._frames.append(dict(bindings or {}))
        log.debug("pushed scope frame %d with %r", memo, sorted((bindings or {}).keys()))
        try:
            yield self
        finally:
            del self._frames[memo:]
