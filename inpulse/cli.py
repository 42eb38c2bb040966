"""
inpulse – command-line driver.

Usage
-----
    inpulse [OPTIONS]

Options
-------
    --source PATH|INT    Video file to replay, or camera index (default: 0)
    --duration FLOAT     Session length in seconds, 0 = until end of stream
                         (default: 20)
    --capacity INT       Sample buffer size (default: 300)
    --min-frames INT     Samples needed before estimating (default: 100)
    --fps FLOAT          Frame rate used when the source does not report one
    --rgb                Frames are RGB rather than OpenCV BGR
    --verbose            Debug logging

Place a fingertip over the lens with the flash on.  Recorded clips are
replayed on a frame-count clock, so the session length is measured in video
time rather than in wall time.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable

import cv2

from inpulse.engine import PulseEngine
from inpulse.frame_reducer import red_channel_mean
from inpulse.session import SessionPhase
from inpulse.sinks import AveragingSink

logger = logging.getLogger("inpulse")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="inpulse",
        description="Fingertip PPG heart-rate measurement from video",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--source", default="0",
                        help="Video file path or camera index")
    parser.add_argument("--duration", type=float, default=20.0,
                        help="Session length in seconds (0 = untimed)")
    parser.add_argument("--capacity", type=int, default=300,
                        help="Sample buffer size")
    parser.add_argument("--min-frames", type=int, default=100,
                        help="Samples needed before a pulse is estimated")
    parser.add_argument("--fps", type=float, default=30.0,
                        help="Fallback frame rate when the source reports none")
    parser.add_argument("--rgb", action="store_true",
                        help="Frames use RGB channel order")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable debug logging")
    return parser.parse_args(argv)


def _open_source(source: str) -> tuple[cv2.VideoCapture, bool]:
    """Return ``(capture, is_file)``."""
    if source.isdigit():
        return cv2.VideoCapture(int(source)), False
    return cv2.VideoCapture(source), True


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    if args.duration < 0:
        logger.error("--duration must be >= 0.")
        return 1

    cap, is_file = _open_source(args.source)
    if not cap.isOpened():
        logger.error("Cannot open video source %r", args.source)
        return 1

    fps = cap.get(cv2.CAP_PROP_FPS) or args.fps
    frame_idx = 0

    clock: Callable[[], float] | None = None
    if is_file:
        # Replay on video time rather than wall time.
        clock = lambda: frame_idx * 1000.0 / fps  # noqa: E731

    sink = AveragingSink()
    channel_order = "rgb" if args.rgb else "bgr"
    log_interval = max(1, int(round(fps)))  # log once per second of samples

    try:
        engine = PulseEngine(
            sink,
            capacity=args.capacity,
            min_frames=args.min_frames,
            clock=clock,
        )
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        cap.release()
        return 1

    duration_ms = args.duration * 1000.0 if args.duration > 0 else None
    logger.info("Reading %s at %.1f fps.", args.source, fps)

    try:
        with engine:
            engine.start_session(duration_ms)
            while engine.phase is SessionPhase.MEASURING:
                ok, frame = cap.read()
                if not ok:
                    logger.info("End of stream after %d frames.", frame_idx)
                    break
                frame_idx += 1
                reading = engine.push(red_channel_mean(frame, channel_order))

                if reading is not None and frame_idx % log_interval == 0:
                    bpm, conf = sink.average
                    logger.info(
                        "BPM=%.1f conf=%.2f  (avg %d BPM, buffer %.0f%%)",
                        reading.bpm, reading.confidence, bpm,
                        engine.buffer_fill_ratio * 100,
                    )
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        cap.release()

    result = engine.result
    if result is None or result.final_bpm == 0.0:
        print("Not enough signal for a measurement "
              f"({engine.buffer_size}/{engine.min_frames} samples).")
        return 0

    print(f"Heart rate: {result.final_bpm:.0f} BPM  "
          f"(confidence {result.final_confidence:.2f})")
    if sink.summary is not None:
        print(f"Average of {sink.summary.reading_count} readings: "
              f"{sink.summary.average_bpm} BPM  "
              f"(confidence {sink.summary.average_confidence:.2f})")
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        datefmt="%H:%M:%S",
    )
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
