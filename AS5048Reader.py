#!/usr/bin/env python3
"""
AS5048Reader.py

Reads the filtered angle of an AS5048A 14-bit magnetic rotary position sensor
over SPI.

SPI Bus Lines:
- MOSI (Master Out Slave In): commands from Raspberry Pi to sensor
- MISO (Master In Slave Out): responses from sensor to Raspberry Pi
- SCLK (Serial Clock): clock output from Raspberry Pi
- SS/CS (Slave Select/Chip Select): active low, must toggle between frames

Features:
- Works on Raspberry Pi using spidev library (SPI mode 1, MSB first)
- Parity-checked 16-bit command frames and pipelined register reads
- Exponential smoothing and circular averaging that survive the 0/2π seam
- Null-zone debounce against single-tic jitter
- Error register and AGC diagnostics
- Thread-safe: one exclusive bus section per exchange

Wiring example:
  Sensor VDD3V -> 3.3V
  Sensor GND -> Pi GND
  Sensor MOSI -> Pi GPIO 10 (MOSI)
  Sensor MISO -> Pi GPIO 9 (MISO)
  Sensor CLK -> Pi GPIO 11 (SCLK)
  Sensor CSn -> Pi GPIO 8 (CE0) or GPIO 7 (CE1)
"""

import time
import threading
import logging
from dataclasses import dataclass, replace
from typing import Optional

from as5048_registers import DATA_MASK, ErrorFlags, RegisterAddress
from as5048_transport import INTER_FRAME_DELAY, AS5048Error, SensorState, Transport
from angle_sample import AngleSample
from angle_filter import AngleFilter
from circular_averager import CircularAverager
from as5048_diagnostics import Diagnostics, format_diagnostics

logger = logging.getLogger("AS5048Reader")


@dataclass
class SensorConfig:
	"""Settings for one AS5048A.

	bus/device select /dev/spidevB.D, device is the chip-select line.
	"""
	bus: int = 0
	device: int = 0
	null_zone: int = 3                    # tics
	max_speed_hz: int = 1000000
	lsb_first: bool = False
	spi_mode: int = 1
	bits_per_word: int = 8
	inter_frame_delay: float = INTER_FRAME_DELAY
	bus_timeout: Optional[float] = 1.0    # seconds, None waits forever
	log_level: int = logging.INFO


class AS5048A:
	def __init__(self, config: Optional[SensorConfig] = None, spi=None,
				 bus_lock: Optional[threading.Lock] = None, log: Optional[logging.Logger] = None):
		"""Create an AS5048A reader.

		Args:
			config: sensor settings, defaults to SensorConfig()
			spi: already open SPI handle (anything with xfer2); when omitted
				start() opens spidev on config.bus/config.device
			bus_lock: lock shared by every device on the same SPI bus
			log: logger for frame tracing, level is set from config.log_level
		"""
		self.config = replace(config) if config is not None else SensorConfig()
		if self.config.null_zone < 0:
			raise ValueError(f"null_zone must be >= 0, got {self.config.null_zone}")
		self.log = log or logger.getChild(f"{self.config.bus}.{self.config.device}")
		self.log.setLevel(self.config.log_level)

		self._spi = spi
		self._owns_spi = spi is None
		self._running = spi is not None
		self._lock = threading.RLock()

		self.state = SensorState(null_zone=self.config.null_zone)
		self.transport = Transport(spi, self.state, lock=bus_lock,
								   inter_frame_delay=self.config.inter_frame_delay,
								   bus_timeout=self.config.bus_timeout, log=self.log)
		self.filter = AngleFilter(self.transport, self.state, log=self.log)
		self.averager = CircularAverager(self.transport, self.state, log=self.log)

		self._read_count = 0
		self._error_count = 0
		self._last_read_time: Optional[float] = None

	def _apply_settings(self):
		self._spi.max_speed_hz = self.config.max_speed_hz
		self._spi.mode = self.config.spi_mode
		self._spi.lsbfirst = self.config.lsb_first
		self._spi.bits_per_word = self.config.bits_per_word

	def _init_spi(self):
		"""Initialize SPI connection"""
		import spidev

		try:
			self._spi = spidev.SpiDev()
			self._spi.open(self.config.bus, self.config.device)
			self._apply_settings()
		except OSError as e:
			self._spi = None
			raise AS5048Error(f"Failed to open SPI bus {self.config.bus}, device {self.config.device}: {e}") from e
		self.transport.spi = self._spi
		self.log.info(f"SPI initialized: bus={self.config.bus}, device={self.config.device}, "
					  f"speed={self.config.max_speed_hz}Hz, mode={self.config.spi_mode}")

	def start(self):
		"""Open the SPI connection"""
		if self._running:
			self.log.warning("AS5048A reader already running")
			return

		if self._owns_spi:
			self._init_spi()
		else:
			self.transport.spi = self._spi
		self._running = True

	def stop(self):
		"""Detach from the SPI bus, closing it if this reader opened it"""
		self._running = False
		self.transport.spi = None

		if self._spi and self._owns_spi:
			try:
				self._spi.close()
				self.log.info("SPI connection closed")
			finally:
				self._spi = None

	def configure(self, clock_rate: int = 1000000, bit_order: str = "msb", transfer_mode: int = 1):
		"""Set clock rate, bit order ("msb"/"lsb") and SPI mode (0-3)."""
		if clock_rate <= 0:
			raise ValueError(f"clock_rate must be positive, got {clock_rate}")
		if bit_order.lower() not in ("msb", "lsb"):
			raise ValueError(f"bit_order must be 'msb' or 'lsb', got {bit_order!r}")
		if transfer_mode not in (0, 1, 2, 3):
			raise ValueError(f"transfer_mode must be 0-3, got {transfer_mode}")

		self.config.max_speed_hz = clock_rate
		self.config.lsb_first = bit_order.lower() == "lsb"
		self.config.spi_mode = transfer_mode
		if self._spi is not None:
			self._apply_settings()
		self.log.info(f"SPI configured: speed={clock_rate}Hz, bit_order={bit_order}, mode={transfer_mode}")

	def _track(self, reads: int = 1):
		self._read_count += reads
		self._last_read_time = time.time()
		if self.state.error_flag:
			self._error_count += 1
			self.log.warning("AS5048A response error flag set")

	def get_magnitude(self) -> int:
		"""CORDIC magnitude of the magnetic field (14 bits)."""
		with self._lock:
			value = self.transport.read(RegisterAddress.MAGNITUDE)
			self._track()
		return value

	def get_raw_angle(self) -> int:
		"""Unfiltered angle register, tics."""
		with self._lock:
			raw = self.transport.read(RegisterAddress.ANGLE)
			self.state.last_raw = raw
			self._track()
		return raw

	def get_angle(self) -> int:
		"""Angle in tics [0, 16383] with null-zone debounce applied."""
		with self._lock:
			angle = self.filter.update_debounced()
			self._track()
		return angle

	def get_angle_radians(self) -> float:
		return AngleSample.from_tics(self.get_angle()).radians

	def get_angle_degrees(self) -> float:
		return AngleSample.from_tics(self.get_angle()).degrees

	def get_exp_smooth_angle(self, smoothing_factor: float) -> int:
		"""Angle in tics, exponentially smoothed with the previous estimate.

		new_angle = old_angle * (1 - smoothing_factor) + sample * smoothing_factor
		"""
		with self._lock:
			angle = self.filter.update_exponential(smoothing_factor)
			self._track()
		return angle

	def get_mean_angle(self, num_samples: int) -> int:
		"""Circular mean of num_samples reads, in tics, null-zone debounced."""
		with self._lock:
			angle = self.averager.mean_angle(num_samples)
			self._track(num_samples)
		return angle

	def get_gain(self) -> int:
		"""AGC value, 0 = strong field, 255 = weak field."""
		return self.get_diagnostics().gain

	def get_diagnostics(self) -> Diagnostics:
		with self._lock:
			raw = self.transport.read(RegisterAddress.AGC_DIAGNOSTIC)
			self._track()
		return Diagnostics.decode(raw)

	def get_errors(self) -> ErrorFlags:
		"""Read and clear the error register; also clears has_error()."""
		with self._lock:
			return self.transport.read_error_register()

	def has_error(self) -> bool:
		"""Error bit of the most recent response"""
		return self.state.error_flag

	def set_zero_position(self, tics: int) -> int:
		"""Write a volatile zero offset, returns the offset read back."""
		if not 0 <= tics <= DATA_MASK:
			raise ValueError(f"zero position must be in [0, {DATA_MASK}], got {tics}")
		with self._lock:
			self.transport.write(RegisterAddress.ZERO_HIGH, (tics >> 6) & 0xFF)
			self.transport.write(RegisterAddress.ZERO_LOW, tics & 0x3F)
			self._track(2)
		self.log.info(f"Zero position set to {tics}")
		return self.get_zero_position()

	def get_zero_position(self) -> int:
		with self._lock:
			high = self.transport.read(RegisterAddress.ZERO_HIGH)
			low = self.transport.read(RegisterAddress.ZERO_LOW)
			self._track(2)
		return ((high & 0xFF) << 6) | (low & 0x3F)

	def get_statistics(self) -> dict:
		"""Get reader statistics.

		Returns:
			Dictionary with read count, error count, last raw reading, etc.
		"""
		with self._lock:
			return {
				'read_count': self._read_count,
				'error_count': self._error_count,
				'last_raw': self.state.last_raw,
				'angle': self.state.angle,
				'last_read_time': self._last_read_time,
				'running': self._running
			}

	def reset_statistics(self):
		"""Reset statistics counters"""
		with self._lock:
			self._read_count = 0
			self._error_count = 0

	def __enter__(self):
		"""Context manager entry"""
		self.start()
		return self

	def __exit__(self, exc_type, exc_val, exc_tb):
		"""Context manager exit"""
		self.stop()


def main():
	"""Example usage of AS5048A"""
	logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

	sensor = AS5048A(SensorConfig(bus=0, device=0, null_zone=3))

	try:
		sensor.start()

		for line in format_diagnostics(sensor.get_diagnostics()):
			logger.info(line)
		time.sleep(1.0)

		logger.info("Reading mean angle every 100ms. Press Ctrl+C to stop.")
		while True:
			angle = AngleSample.from_tics(sensor.get_mean_angle(50))
			logger.info(f"Angle: {angle.tics:5d} ({angle.degrees:6.2f}°, {angle.radians:.4f} rad)")

			if sensor.has_error():
				errors = sensor.get_errors()
				logger.warning(f"Error flag set: {errors!r}")

			time.sleep(0.1)

	except KeyboardInterrupt:
		logger.info("Interrupted by user")
	except AS5048Error as e:
		logger.error(f"Runtime error: {e}", exc_info=True)
	finally:
		sensor.stop()
		logger.info("AS5048A reader stopped")


if __name__ == '__main__':
	main()
