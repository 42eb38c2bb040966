"""
inpulse — fingertip PPG pulse estimation from camera frames.
Cover the camera lens with a fingertip lit by the flash; the engine tracks the
red-channel intensity of each frame and turns its periodic variation into a
heart-rate estimate and a confidence score.
"""

from inpulse.engine import PulseEngine
from inpulse.estimator import PulseEstimator, PulseReading
from inpulse.frame_reducer import red_channel_mean
from inpulse.session import SessionPhase, SessionResult
from inpulse.sinks import AveragingSink, CallbackSink, NullSink, PulseSink

__version__ = "0.1.0"
__author__ = "inpulse"

__all__ = [
    "AveragingSink",
    "CallbackSink",
    "NullSink",
    "PulseEngine",
    "PulseEstimator",
    "PulseReading",
    "PulseSink",
    "SessionPhase",
    "SessionResult",
    "red_channel_mean",
]
