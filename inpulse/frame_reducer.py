"""
Frame reducer.

When a lit fingertip covers the lens, nearly all useful information sits in
the red channel: blood volume changes modulate how much red light is
reflected back.  Each frame is therefore reduced to a single number, the mean
red intensity over a square region of interest in the frame centre.

The ROI side is half of the shorter frame dimension.  Pixels that would fall
outside the frame are simply not counted, so odd-sized or tiny frames never
raise.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

_RED_CHANNEL = {
    "bgr": 2,   # OpenCV default
    "rgb": 0,
}


def roi_bounds(height: int, width: int) -> Tuple[int, int, int, int]:
    """
    Return the clipped ROI as ``(top, bottom, left, right)`` slice bounds.

    The nominal square spans ``[c - r, c + r)`` on each axis, where ``c`` is
    the frame centre and ``r = min(height, width) // 4``.  The result may be
    empty (``top == bottom``) for degenerate frames.
    """
    cy, cx = height // 2, width // 2
    r = min(height, width) // 4
    top = max(0, cy - r)
    bottom = min(height, cy + r)
    left = max(0, cx - r)
    right = min(width, cx + r)
    return top, max(top, bottom), left, max(left, right)


def red_channel_mean(frame: np.ndarray, channel_order: str = "bgr") -> float:
    """
    Mean red-channel intensity over the central ROI of *frame*.

    Parameters
    ----------
    frame:
        Image array (H × W × C).  Any numeric dtype is accepted.
    channel_order:
        ``"bgr"`` (OpenCV frames, default) or ``"rgb"``.

    Returns
    -------
    float
        The mean, or ``0.0`` when the sampled region is empty.
    """
    try:
        channel = _RED_CHANNEL[channel_order.lower()]
    except KeyError:
        raise ValueError(f"Unknown channel order {channel_order!r}") from None

    if frame.ndim != 3 or frame.shape[2] <= channel:
        raise ValueError(
            f"Expected an H × W × C colour frame, got shape {frame.shape}"
        )

    top, bottom, left, right = roi_bounds(frame.shape[0], frame.shape[1])
    patch = frame[top:bottom, left:right, channel]
    if patch.size == 0:
        return 0.0
    return float(patch.astype(np.float64).mean())
