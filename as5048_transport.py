"""
AS5048A SPI transport

Runs the chip's pipelined exchanges: every transfer clocks out the answer to
the *previous* command, so a register read is the command followed by a NOP
whose response carries the result. All transfers of one logical exchange run
inside a single exclusive bus section, separated by the inter-frame gap the
chip needs (100 us).

The SPI handle is any object with an `xfer2(list) -> list` method, e.g.
`spidev.SpiDev`. Chip select toggles between `xfer2` calls.
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

import as5048_registers as regs
from as5048_registers import RegisterAddress

logger = logging.getLogger(__name__)

INTER_FRAME_DELAY = 100e-6  # seconds


class AS5048Error(Exception):
    """Raised for AS5048A driver failures (not for response error flags)"""
    pass


class BusBusyError(AS5048Error, TimeoutError):
    """Raised when the exclusive bus section could not be acquired in time"""
    pass


@dataclass
class SensorState:
    """Per-driver state shared by the transport and the filters"""
    null_zone: int = 3
    last_raw: int = 0
    angle: int = 0              # smoothed angle, tics
    error_flag: bool = False    # error bit of the most recent response


class Transport:
    """
    Exclusive-access exchanges with one AS5048A
    """

    def __init__(self, spi, state: SensorState, lock: Optional[threading.Lock] = None,
                 inter_frame_delay: float = INTER_FRAME_DELAY, bus_timeout: Optional[float] = 1.0,
                 log: Optional[logging.Logger] = None):
        """
        Args:
            spi: open SPI handle with an xfer2() method
            state: sensor state whose error flag is updated by every read
            lock: bus lock, pass the same lock to every device sharing the bus
            inter_frame_delay: gap between transfers of one exchange, in seconds
            bus_timeout: max seconds to wait for the bus, None waits forever
            log: logger to trace frames on (DEBUG level)
        """
        self.spi = spi
        self.state = state
        self.lock = lock if lock is not None else threading.Lock()
        self.inter_frame_delay = inter_frame_delay
        self.bus_timeout = bus_timeout
        self.log = log or logger

    @contextmanager
    def exclusive(self):
        """Hold the bus for the duration of one exchange."""
        if self.spi is None:
            raise AS5048Error("SPI connection not open")
        timeout = -1 if self.bus_timeout is None else self.bus_timeout
        if not self.lock.acquire(timeout=timeout):
            raise BusBusyError(f"SPI bus busy for more than {self.bus_timeout}s")
        try:
            yield
        finally:
            self.lock.release()

    def _transfer16(self, word: int) -> int:
        tx = [(word >> 8) & 0xFF, word & 0xFF]
        rx = self.spi.xfer2(tx)
        result = (rx[0] << 8) | rx[1]
        self.log.debug(f"Sent 0x{word:04X}, received 0x{result:04X}")
        return result

    def _gap(self):
        time.sleep(self.inter_frame_delay)

    def _record(self, word: int) -> int:
        value, error = regs.decode_response(word)
        if error:
            self.log.debug("Response error bit set")
        self.state.error_flag = error
        return value

    def read(self, address: int) -> int:
        """Read one register and return its 14-bit content.

        The sticky error flag is overwritten with the error bit of the
        response.
        """
        command = regs.encode_read(address)
        with self.exclusive():
            self._transfer16(command)
            self._gap()
            word = self._transfer16(regs.NOP_WORD)
        self.log.debug(f"Read register 0x{int(address):04X} -> 0x{word:04X}")
        return self._record(word)

    def write(self, address: int, value: int) -> int:
        """Write one register and return the content the chip reports back."""
        command = regs.encode_write(address)
        data = regs.encode_data(value)
        with self.exclusive():
            self._transfer16(command)
            self._gap()
            self._transfer16(data)
            self._gap()
            word = self._transfer16(regs.NOP_WORD)
        self.log.debug(f"Wrote 0x{value:04X} to register 0x{int(address):04X} -> 0x{word:04X}")
        return self._record(word)

    def read_error_register(self) -> regs.ErrorFlags:
        """Read and clear the hardware error register.

        Three transfers: the error register command, a NOP that clocks out the
        register contents, and a second NOP that completes the clear.
        """
        self.state.error_flag = False
        command = regs.encode_read(RegisterAddress.ERROR)
        with self.exclusive():
            self._transfer16(command)
            self._gap()
            word = self._transfer16(regs.NOP_WORD)
            self._gap()
            self._transfer16(regs.NOP_WORD)
        errors = regs.ErrorFlags(word & 0x7)
        if errors:
            self.log.warning(f"AS5048A error register: {errors!r}")
        return errors
