# -----------------------------------------------------------------------------
# Execution trace
# One Tracer per execute call. Stages append {kind, detail} records in order:
#   validate -> parse -> apply (one per operator / function) -> result | error
# Records past `limit` are dropped and a single "truncated" record closes the
# exported list, so a trace stays bounded whatever the formula size.
# -----------------------------------------------------------------------------

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Dict, Any

DEFAULT_LIMIT = 1000


@dataclass(frozen=True)
class TraceStep:
    kind: str
    detail: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "detail": self.detail}


class Tracer:
    def __init__(self, limit: int = DEFAULT_LIMIT):
        self._steps: List[TraceStep] = []
        self._limit = limit
        self.dropped = 0

    @property
    def truncated(self) -> bool:
        return self.dropped > 0

    def add(self, kind: str, detail: Dict[str, Any]) -> None:
        if len(self._steps) >= self._limit:
            self.dropped += 1
            return
        self._steps.append(TraceStep(kind, detail))

    def steps(self) -> List[Dict[str, Any]]:
        out = [s.to_dict() for s in self._steps]
        if self.truncated:
            out.append({"kind": "truncated", "detail": {"limit": self._limit, "dropped": self.dropped}})
        return out
