"""Per-event processing outcome."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

OutcomeStatus = Literal["success", "dropped", "fail"]


@dataclass(frozen=True, slots=True)
class EventOutcome:
    status: OutcomeStatus
    reason: str = ""
    detail: str = ""

    @classmethod
    def success(cls) -> EventOutcome:
        return cls(status="success")

    @classmethod
    def dropped(cls, reason: str) -> EventOutcome:
        return cls(status="dropped", reason=reason)

    @classmethod
    def failed(cls, detail: str) -> EventOutcome:
        return cls(status="fail", reason="error", detail=detail)
