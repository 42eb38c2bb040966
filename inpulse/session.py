"""
Measurement session state.

A session is one of three values::

    Waiting  ──start──▶  Measuring(started_at_ms, duration_ms)  ──stop/timeout──▶  Completed(result)
       ▲                                                                                │
       └──────────────────────────────── reset ─────────────────────────────────────────┘

The engine holds exactly one of these at a time and replaces it on every
transition; the values themselves are immutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union


class SessionPhase(Enum):
    WAITING   = auto()
    MEASURING = auto()
    COMPLETED = auto()


@dataclass(frozen=True)
class SessionResult:
    """Final values of a session; both are 0 when too few samples were collected."""

    final_bpm: float = 0.0
    final_confidence: float = 0.0


@dataclass(frozen=True)
class Waiting:
    phase = SessionPhase.WAITING


@dataclass(frozen=True)
class Measuring:
    started_at_ms: float
    duration_ms: Optional[float] = None     # None = runs until stopped

    phase = SessionPhase.MEASURING

    @property
    def is_timed(self) -> bool:
        return self.duration_ms is not None

    def expired(self, now_ms: float) -> bool:
        return self.is_timed and now_ms - self.started_at_ms >= self.duration_ms


@dataclass(frozen=True)
class Completed:
    result: SessionResult
    started_at_ms: float
    finished_at_ms: float

    phase = SessionPhase.COMPLETED


Session = Union[Waiting, Measuring, Completed]
