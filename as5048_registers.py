"""
AS5048A register map and frame codec

Builds the 16-bit command words sent to the AS5048A and decodes the 16-bit
response words it returns.

Command word (MSB first):
- bit 15: even parity over bits 0..14
- bit 14: read/write (1 = read)
- bits 13..0: register address

Response word:
- bit 15: parity
- bit 14: error flag
- bits 13..0: payload
"""

from enum import IntEnum, IntFlag
from typing import Tuple

READ_BIT = 0x4000
PARITY_BIT = 0x8000
ERROR_BIT = 0x4000
DATA_MASK = 0x3FFF      # 14-bit address / payload
WORD_MASK = 0xFFFF

# Error register clear command (read bit + ERROR address, parity already even)
CLEAR_ERROR_CMD = 0x4001
NOP_WORD = 0x0000


class RegisterAddress(IntEnum):
    """AS5048A register addresses"""
    NOP = 0x0000              # no operation, clocks out the result of the last command
    ERROR = 0x0001            # error register, cleared by reading it
    PROGRAM_CONTROL = 0x0003  # programming control (OTP burn, not used here)
    ZERO_HIGH = 0x0016        # zero position, bits 13..6 of the offset
    ZERO_LOW = 0x0017         # zero position, bits 5..0 of the offset
    AGC_DIAGNOSTIC = 0x3FFD   # diagnostics and automatic gain control
    MAGNITUDE = 0x3FFE        # CORDIC magnitude
    ANGLE = 0x3FFF            # angle after zero position correction


class ErrorFlags(IntFlag):
    """Contents of the low 3 bits of the error register"""
    NONE = 0
    FRAMING = 0x1
    INVALID_COMMAND = 0x2
    PARITY = 0x4


def even_parity(value: int, width: int = 16) -> int:
    """Return the bit that makes the population count of `value` even.

    Counts set bits in the low `width` bits of `value`; returns 1 if that
    count is odd.
    """
    count = 0
    for _ in range(width):
        if value & 0x1:
            count += 1
        value >>= 1
    return count & 0x1


def _check_address(address: int) -> int:
    if not 0 <= address <= DATA_MASK:
        raise ValueError(f"register address must be in [0, 0x{DATA_MASK:04X}], got 0x{address:X}")
    return address


def encode_read(address: int) -> int:
    """Build the read command word for `address`."""
    command = READ_BIT | _check_address(address)
    return command | (even_parity(command, 15) << 15)


def encode_write(address: int) -> int:
    """Build the write command word for `address` (read/write bit clear)."""
    command = _check_address(address)
    return command | (even_parity(command, 15) << 15)


def encode_data(value: int) -> int:
    """Build the data frame that follows a write command."""
    if not 0 <= value <= DATA_MASK:
        raise ValueError(f"data value must be in [0, {DATA_MASK}], got {value}")
    return value | (even_parity(value, 15) << 15)


def decode_response(word: int) -> Tuple[int, bool]:
    """Split a response word into (14-bit payload, error flag)."""
    word &= WORD_MASK
    return word & DATA_MASK, bool(word & ERROR_BIT)
