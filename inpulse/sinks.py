"""
Output channels for the pulse engine.

The engine reports through a single injected *sink* object instead of
nullable callback fields.  Anything with the two methods of
:class:`PulseSink` will do.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

import numpy as np

from inpulse.estimator import PulseReading
from inpulse.session import SessionResult

logger = logging.getLogger(__name__)


class PulseSink(Protocol):
    def on_pulse_updated(self, bpm: float, confidence: float) -> None:
        """Called after every successful incremental recompute."""

    def on_session_completed(self, final_bpm: float, final_confidence: float) -> None:
        """Called exactly once per session, on stop or timeout."""


class NullSink:
    """Discards every event."""

    def on_pulse_updated(self, bpm: float, confidence: float) -> None:
        pass

    def on_session_completed(self, final_bpm: float, final_confidence: float) -> None:
        pass


class CallbackSink:
    """
    Adapts two plain callables to :class:`PulseSink`.  Either may be omitted.

    Usage::

        engine = PulseEngine(CallbackSink(on_pulse=print))
    """

    def __init__(
        self,
        on_pulse: Optional[Callable[[float, float], None]] = None,
        on_complete: Optional[Callable[[float, float], None]] = None,
    ) -> None:
        self._on_pulse = on_pulse
        self._on_complete = on_complete

    def on_pulse_updated(self, bpm: float, confidence: float) -> None:
        if self._on_pulse is not None:
            self._on_pulse(bpm, confidence)

    def on_session_completed(self, final_bpm: float, final_confidence: float) -> None:
        if self._on_complete is not None:
            self._on_complete(final_bpm, final_confidence)


@dataclass(frozen=True)
class MeasurementSummary:
    """
    Aggregate of one measurement: the averaged intermediate readings plus
    the engine's own final result.
    """

    average_bpm: int
    average_confidence: float
    reading_count: int
    final: SessionResult


class AveragingSink:
    """
    Collects intermediate readings and averages them.

    The running average is what a live display shows while measuring; once
    the session completes the average is frozen into :attr:`summary`.
    Readings accumulate until :meth:`clear`, so a new measurement should
    start with a cleared sink.
    """

    def __init__(self) -> None:
        self._bpms: List[float] = []
        self._confidences: List[float] = []
        self.summary: Optional[MeasurementSummary] = None

    def __len__(self) -> int:
        return len(self._bpms)

    @property
    def average(self) -> PulseReading:
        """Running ``(bpm, confidence)`` mean; BPM is truncated to whole beats."""
        if not self._bpms:
            return PulseReading(0.0, 0.0)
        return PulseReading(
            float(int(np.mean(self._bpms))),
            float(np.mean(self._confidences)),
        )

    def on_pulse_updated(self, bpm: float, confidence: float) -> None:
        self._bpms.append(bpm)
        self._confidences.append(confidence)

    def on_session_completed(self, final_bpm: float, final_confidence: float) -> None:
        avg_bpm, avg_conf = self.average
        self.summary = MeasurementSummary(
            average_bpm=int(avg_bpm),
            average_confidence=avg_conf,
            reading_count=len(self._bpms),
            final=SessionResult(final_bpm, final_confidence),
        )
        logger.info(
            "Measurement summary: avg=%d BPM conf=%.2f over %d readings",
            self.summary.average_bpm,
            self.summary.average_confidence,
            self.summary.reading_count,
        )

    def clear(self) -> None:
        self._bpms.clear()
        self._confidences.clear()
        self.summary = None
