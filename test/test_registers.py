"""
Unit tests for the AS5048A frame codec.
"""

import pytest

import as5048_registers as regs
from as5048_registers import RegisterAddress, ErrorFlags


def popcount(value):
    return bin(value).count("1")


class TestEvenParity:
    """Parity bit over the low bits of a word."""

    def test_all_15_bit_inputs_give_even_words(self):
        """Setting the parity bit always leaves an even number of ones."""
        for value in range(1 << 15):
            word = value | (regs.even_parity(value, 15) << 15)
            assert popcount(word) % 2 == 0

    def test_width_limits_the_bits_counted(self):
        """Bits above `width` are ignored."""
        assert regs.even_parity(0b1, 1) == 1
        assert regs.even_parity(0b11, 1) == 1
        assert regs.even_parity(0b11, 2) == 0

    def test_sixteen_bit_count_matches_fifteen_when_bit15_clear(self):
        """Counting 16 positions of a command without parity equals counting 15."""
        for address in (0x0, 0x1, 0x16, 0x3FFD, 0x3FFF):
            command = regs.READ_BIT | address
            assert regs.even_parity(command) == regs.even_parity(command, 15)


class TestEncodeRead:
    """Read command words."""

    def test_known_command_words(self):
        """Command words match the values on the wire."""
        assert regs.encode_read(RegisterAddress.ANGLE) == 0xFFFF
        assert regs.encode_read(RegisterAddress.MAGNITUDE) == 0x7FFE
        assert regs.encode_read(RegisterAddress.AGC_DIAGNOSTIC) == 0x7FFD
        assert regs.encode_read(RegisterAddress.ERROR) == regs.CLEAR_ERROR_CMD
        assert regs.encode_read(RegisterAddress.NOP) == 0xC000

    def test_read_bit_and_address_are_placed(self):
        """Bit 14 is set and the address sits in bits 13..0."""
        for address in (0x0, 0x3, 0x17, 0x1234, 0x3FFF):
            word = regs.encode_read(address)
            assert word & regs.READ_BIT
            assert word & regs.DATA_MASK == address
            assert popcount(word) % 2 == 0

    def test_address_out_of_range(self):
        """Addresses wider than 14 bits are rejected."""
        with pytest.raises(ValueError):
            regs.encode_read(0x4000)
        with pytest.raises(ValueError):
            regs.encode_read(-1)


class TestEncodeWrite:
    """Write command and data frames."""

    def test_write_command_has_read_bit_clear(self):
        word = regs.encode_write(RegisterAddress.ZERO_HIGH)
        assert not word & regs.READ_BIT
        assert word & regs.DATA_MASK == 0x16
        assert popcount(word) % 2 == 0

    def test_data_frame_parity(self):
        for value in (0, 1, 0x3F, 0xFF, 0x3FFF):
            word = regs.encode_data(value)
            assert word & regs.DATA_MASK == value
            assert not word & regs.ERROR_BIT
            assert popcount(word) % 2 == 0

    def test_data_out_of_range(self):
        with pytest.raises(ValueError):
            regs.encode_data(0x4000)


class TestDecodeResponse:
    """Response word decoding."""

    def test_error_bit_is_reported_and_payload_kept(self):
        """A forced error bit is seen and the 14-bit payload survives."""
        for address in range(1 << 14):
            word = regs.encode_read(address) | regs.ERROR_BIT
            value, error = regs.decode_response(word)
            assert error is True
            assert value == address

    def test_clean_response(self):
        value, error = regs.decode_response(0x8123)
        assert error is False
        assert value == 0x0123

    def test_error_flags(self):
        flags = ErrorFlags(0b101)
        assert ErrorFlags.FRAMING in flags
        assert ErrorFlags.PARITY in flags
        assert ErrorFlags.INVALID_COMMAND not in flags
