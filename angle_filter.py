"""
Smoothed angle estimate for the AS5048A.

Two filters share one stored estimate (SensorState.angle, in tics):
- exponential smoothing that blends the short way around the 0/16383 seam
- a null-zone debounce that ignores changes of a few tics
"""

import logging
from typing import Optional

from as5048_registers import RegisterAddress
from as5048_transport import SensorState, Transport
from angle_sample import TICS_PER_REV, AngleSample, round_half_up

logger = logging.getLogger(__name__)

HALF_REV = TICS_PER_REV // 2


def blend(old: int, new: int, factor: float) -> int:
    """Exponential blend of two tic values that does not cross the seam.

    Returns the new estimate in [0, TICS_PER_REV).
    """
    if old - new > HALF_REV:
        # sample wrapped past the top
        new += TICS_PER_REV
        result = old * (1 - factor) + new * factor
    elif new - old > HALF_REV:
        # sample wrapped past zero
        new -= TICS_PER_REV
        result = old * (1 - factor) + new * factor
        if result < 0:
            result += TICS_PER_REV
    else:
        result = old * (1 - factor) + new * factor
    return round_half_up(result) % TICS_PER_REV


def debounce(last: int, raw: int, null_zone: int) -> int:
    """Return `raw` if it moved more than `null_zone` tics from `last`, else `last`."""
    if abs(raw - last) > null_zone:
        return raw
    return last


class AngleFilter:
    def __init__(self, transport: Transport, state: SensorState, log: Optional[logging.Logger] = None):
        self.transport = transport
        self.state = state
        self.log = log or logger

    def _sample(self) -> int:
        raw = AngleSample.from_tics(self.transport.read(RegisterAddress.ANGLE)).tics
        self.state.last_raw = raw
        return raw

    def update_exponential(self, smoothing_factor: float) -> int:
        """Read one sample and blend it into the estimate.

        new_angle = old_angle * (1 - factor) + sample * factor
        """
        if not 0.0 <= smoothing_factor <= 1.0:
            raise ValueError(f"smoothing factor must be in [0, 1], got {smoothing_factor}")
        raw = self._sample()
        self.state.angle = blend(self.state.angle, raw, smoothing_factor)
        self.log.debug(f"Exponential smoothing: raw={raw} smoothed={self.state.angle}")
        return self.state.angle

    def update_debounced(self) -> int:
        """Read one sample and adopt it only if it leaves the null zone."""
        raw = self._sample()
        self.state.angle = debounce(self.state.angle, raw, self.state.null_zone)
        return self.state.angle
