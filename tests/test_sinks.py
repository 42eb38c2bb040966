"""
Unit tests for the engine output sinks.
Run with:  pytest tests/test_sinks.py
"""

from __future__ import annotations

import numpy as np
import pytest

from inpulse.engine import PulseEngine
from inpulse.session import SessionResult
from inpulse.sinks import AveragingSink, CallbackSink, NullSink


class TestCallbackSink:

    def test_forwards_both_events(self):
        pulses, finals = [], []
        sink = CallbackSink(
            on_pulse=lambda b, c: pulses.append((b, c)),
            on_complete=lambda b, c: finals.append((b, c)),
        )
        sink.on_pulse_updated(72.0, 0.8)
        sink.on_session_completed(71.0, 0.9)
        assert pulses == [(72.0, 0.8)]
        assert finals == [(71.0, 0.9)]

    def test_missing_callbacks_are_ignored(self):
        sink = CallbackSink()
        sink.on_pulse_updated(72.0, 0.8)
        sink.on_session_completed(71.0, 0.9)

    def test_null_sink_accepts_events(self):
        sink = NullSink()
        sink.on_pulse_updated(72.0, 0.8)
        sink.on_session_completed(71.0, 0.9)


class TestAveragingSink:

    def test_empty_average_is_zero(self):
        sink = AveragingSink()
        assert sink.average == (0.0, 0.0)
        assert len(sink) == 0

    def test_running_average_truncates_bpm(self):
        sink = AveragingSink()
        for bpm, conf in [(70.0, 0.2), (73.0, 0.4), (75.0, 0.9)]:
            sink.on_pulse_updated(bpm, conf)
        bpm, conf = sink.average
        assert bpm == 72.0                   # 72.67 → 72
        assert conf == pytest.approx(0.5)

    def test_summary_on_completion(self):
        sink = AveragingSink()
        sink.on_pulse_updated(60.0, 0.5)
        sink.on_pulse_updated(62.0, 0.7)
        sink.on_session_completed(61.5, 0.8)

        summary = sink.summary
        assert summary.average_bpm == 61
        assert summary.average_confidence == pytest.approx(0.6)
        assert summary.reading_count == 2
        assert summary.final == SessionResult(61.5, 0.8)

    def test_clear(self):
        sink = AveragingSink()
        sink.on_pulse_updated(60.0, 0.5)
        sink.on_session_completed(60.0, 0.5)
        sink.clear()
        assert len(sink) == 0
        assert sink.summary is None

    def test_with_engine(self):
        sink = AveragingSink()
        engine = PulseEngine(sink)
        engine.start_session(None)
        i = np.arange(200)
        for s in 120 + 10 * np.sin(2 * np.pi * i / 30 + 0.3):
            engine.push(float(s))
        engine.stop_session()

        assert len(sink) == 101
        assert sink.summary.reading_count == 101
        assert 55 <= sink.summary.average_bpm <= 65
        assert sink.summary.final == engine.result
