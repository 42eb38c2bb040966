"""
Pulse engine.

Owns the sample buffer and the measurement session.  Each pushed sample is
buffered; once enough samples are available every push recomputes the pulse
over the whole buffer and reports it to the sink.  A timed session is
finalised from inside :meth:`PulseEngine.push` as soon as its deadline has
passed, so no timer thread is involved.  An idle timed session therefore
completes on the next push, on :meth:`~PulseEngine.stop_session` or on
:meth:`~PulseEngine.close`.

The engine is single-writer: feed it from one thread only.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import numpy as np

from inpulse.estimator import PulseEstimator, PulseReading
from inpulse.ring_buffer import SampleRingBuffer
from inpulse.session import (
    Completed,
    Measuring,
    Session,
    SessionPhase,
    SessionResult,
    Waiting,
)
from inpulse.sinks import NullSink, PulseSink

logger = logging.getLogger(__name__)

# Marks "use the configured session duration" in start_session().
_DEFAULT = object()


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class PulseEngine:
    """
    Streaming pulse estimator with a measurement-session state machine.

    Parameters
    ----------
    sink:
        Receives ``on_pulse_updated`` and ``on_session_completed`` events.
        Defaults to a :class:`~inpulse.sinks.NullSink`.
    capacity:
        Number of most recent samples kept (default 300 ≈ 10 s at 30 fps).
    min_frames:
        Samples required before any estimate is attempted (default 100).
    session_duration_ms:
        Deadline used by :meth:`start_session` when none is given
        (default 20 000 ms).
    estimator:
        The :class:`~inpulse.estimator.PulseEstimator` to use.
    clock:
        Zero-argument callable returning milliseconds.  Defaults to the
        monotonic clock; inject a fake one for replay or tests.
    backend_loader:
        Optional zero-argument callable that acquires the backing numeric
        resource.  If it raises, the engine stays inert for good.
    """

    def __init__(
        self,
        sink: Optional[PulseSink] = None,
        *,
        capacity: int = 300,
        min_frames: int = 100,
        session_duration_ms: float = 20_000,
        estimator: Optional[PulseEstimator] = None,
        clock: Optional[Callable[[], float]] = None,
        backend_loader: Optional[Callable[[], Any]] = None,
    ) -> None:
        if min_frames < 1:
            raise ValueError(f"min_frames must be >= 1, got {min_frames}")
        if session_duration_ms is not None and session_duration_ms <= 0:
            raise ValueError(
                f"session_duration_ms must be positive, got {session_duration_ms}"
            )

        self.sink: PulseSink = sink if sink is not None else NullSink()
        self.min_frames = int(min_frames)
        self.session_duration_ms = session_duration_ms
        self.estimator = estimator if estimator is not None else PulseEstimator()

        self._buffer = SampleRingBuffer(capacity)
        if self.min_frames > self._buffer.capacity:
            raise ValueError(
                f"min_frames ({min_frames}) cannot exceed capacity ({capacity})"
            )
        self._clock = clock if clock is not None else _monotonic_ms
        self._session: Session = Waiting()
        self._last_reading = PulseReading(0.0, 0.0)

        self._backend: Any = None
        self._ready = False
        self._initialize(backend_loader)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _initialize(self, backend_loader: Optional[Callable[[], Any]]) -> None:
        if backend_loader is None:
            self._ready = True
            return
        try:
            self._backend = backend_loader()
        except Exception as exc:
            logger.error("Pulse engine backend failed to initialise: %s", exc)
            self._backend = None
            self._ready = False
        else:
            self._ready = True

    def is_ready(self) -> bool:
        """True once the backing resources are initialised and not yet closed."""
        return self._ready

    def close(self) -> None:
        """
        Finalise any running session, then release the backend.
        Safe to call in any state, and more than once.
        """
        self.stop_session()
        backend, self._backend = self._backend, None
        if backend is not None and hasattr(backend, "close"):
            backend.close()
        if self._ready:
            logger.debug("Pulse engine closed.")
        self._ready = False

    # Context-manager support
    def __enter__(self) -> "PulseEngine":
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Sample intake
    # ------------------------------------------------------------------

    def push(self, sample: float) -> Optional[PulseReading]:
        """
        Add one luminance sample.

        Returns the fresh reading when a recompute happened, else *None*.
        Does nothing when the engine is not ready or the session has
        completed.
        """
        if not self._ready or isinstance(self._session, Completed):
            return None

        self._buffer.append(sample)

        reading = None
        if len(self._buffer) >= self.min_frames:
            reading = self._recompute()
            if reading is not None:
                self.sink.on_pulse_updated(reading.bpm, reading.confidence)

        session = self._session
        if isinstance(session, Measuring) and session.expired(self._clock()):
            logger.debug("Session deadline reached after %.0f ms.", self.elapsed_ms())
            self._finalize(session)

        return reading

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    def start_session(self, duration_ms: Any = _DEFAULT) -> bool:
        """
        Begin measuring.  Without an argument the configured
        ``session_duration_ms`` is used; pass *None* for a session that runs
        until :meth:`stop_session`.

        Only valid while waiting on a ready engine.  Returns *False* (and
        changes nothing) when a session is already running or completed, or
        when the engine is closed or failed to initialise.
        """
        if not self._ready:
            logger.debug("start_session ignored: engine not ready")
            return False
        if not isinstance(self._session, Waiting):
            logger.debug("start_session ignored in phase %s", self.phase.name)
            return False

        if duration_ms is _DEFAULT:
            duration_ms = self.session_duration_ms
        if duration_ms is not None and duration_ms <= 0:
            raise ValueError(f"duration_ms must be positive, got {duration_ms}")

        self._session = Measuring(started_at_ms=self._clock(), duration_ms=duration_ms)
        logger.info(
            "Measurement started (%s).",
            f"{duration_ms:.0f} ms" if duration_ms is not None else "untimed",
        )
        return True

    def stop_session(self) -> Optional[SessionResult]:
        """
        Finalise the running session and report its result.
        Returns *None* when no session is running.
        """
        session = self._session
        if not isinstance(session, Measuring):
            return None
        return self._finalize(session)

    def reset(self, clear_buffer: bool = False) -> None:
        """
        Return to the waiting phase.  The buffer is kept unless
        *clear_buffer* is set, in which case the next session starts from
        scratch.
        """
        self._session = Waiting()
        if clear_buffer:
            self._buffer.clear()
            self._last_reading = PulseReading(0.0, 0.0)
        logger.debug("Session reset (buffer %s).", "cleared" if clear_buffer else "kept")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session

    @property
    def phase(self) -> SessionPhase:
        return self._session.phase

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    @property
    def capacity(self) -> int:
        return self._buffer.capacity

    @property
    def buffer_fill_ratio(self) -> float:
        """How full the sample buffer is (0 – 1)."""
        return len(self._buffer) / self._buffer.capacity

    @property
    def last_reading(self) -> PulseReading:
        return self._last_reading

    @property
    def result(self) -> Optional[SessionResult]:
        if isinstance(self._session, Completed):
            return self._session.result
        return None

    def samples(self) -> np.ndarray:
        """Copy of the buffered samples, oldest first."""
        return self._buffer.snapshot()

    def elapsed_ms(self) -> float:
        """Time spent in the current (or just completed) session."""
        session = self._session
        if isinstance(session, Measuring):
            return self._clock() - session.started_at_ms
        if isinstance(session, Completed):
            return session.finished_at_ms - session.started_at_ms
        return 0.0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _recompute(self) -> Optional[PulseReading]:
        try:
            reading = self.estimator.estimate(self._buffer.snapshot())
        except Exception as exc:
            logger.warning("Pulse recompute failed, keeping last reading: %s", exc)
            return None
        self._last_reading = reading
        return reading

    def _finalize(self, session: Measuring) -> SessionResult:
        if len(self._buffer) >= self.min_frames:
            # A failed recompute leaves the last good reading in place.
            self._recompute()
            result = SessionResult(*self._last_reading)
        else:
            result = SessionResult(0.0, 0.0)

        self._session = Completed(
            result=result,
            started_at_ms=session.started_at_ms,
            finished_at_ms=self._clock(),
        )
        logger.info(
            "Measurement completed: BPM=%.1f conf=%.2f (%d samples)",
            result.final_bpm,
            result.final_confidence,
            len(self._buffer),
        )
        self.sink.on_session_completed(result.final_bpm, result.final_confidence)
        return result
