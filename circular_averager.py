"""
Circular mean of several AS5048A angle samples.

Samples are averaged as unit vectors, so 16383 and 1 average to 0 rather than
to the far side of the circle.
"""

import logging
from typing import Iterable, Optional

from as5048_registers import RegisterAddress
from as5048_transport import SensorState, Transport
from angle_filter import debounce
from angle_sample import AngleSample

logger = logging.getLogger(__name__)


def circular_mean(samples: Iterable[int], log: Optional[logging.Logger] = None) -> int:
    """Mean of tic values on the circle; 0 when the vectors cancel out."""
    sum_x = 0.0
    sum_y = 0.0
    n = 0
    for tics in samples:
        sample = AngleSample.from_tics(tics)
        sum_x += sample.x
        sum_y += sample.y
        n += 1
    if n == 0:
        raise ValueError("circular mean of no samples")
    x = sum_x / n
    y = sum_y / n
    # Cancelling samples leave float residue, treat it as the origin
    if abs(x) < 1e-12 and abs(y) < 1e-12:
        (log or logger).debug("Samples cancel out, circular mean defaults to 0")
        return 0
    return AngleSample.from_xy(x, y).tics


class CircularAverager:
    def __init__(self, transport: Transport, state: SensorState, log: Optional[logging.Logger] = None):
        self.transport = transport
        self.state = state
        self.log = log or logger

    def mean_angle(self, n: int) -> int:
        """Average `n` fresh samples and debounce the result against the estimate.

        Cancelling samples give a mean of 0, which is debounced like any other
        mean, so an estimate within the null zone of 0 is returned unchanged.
        """
        if n < 1:
            raise ValueError(f"sample count must be at least 1, got {n}")
        samples = [self.transport.read(RegisterAddress.ANGLE) for _ in range(n)]
        self.state.last_raw = samples[-1]
        mean = circular_mean(samples, self.log)
        self.state.angle = debounce(self.state.angle, mean, self.state.null_zone)
        self.log.debug(f"Mean of {n} samples: {mean}, estimate {self.state.angle}")
        return self.state.angle
