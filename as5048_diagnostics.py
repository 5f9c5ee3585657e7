"""
Decoding of the AS5048A diagnostics / AGC register (0x3FFD).

Bits 0..7  AGC value (0 = high field, 255 = low field)
Bit 8      OCF, offset compensation finished
Bit 9      COF, CORDIC overflow
Bit 10     Comp Low, magnetic field too strong
Bit 11     Comp High, magnetic field too weak
"""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Diagnostics:
    """Named fields of one diagnostics register value"""
    gain: int
    offset_compensation_finished: bool
    cordic_overflow: bool
    comp_low: bool
    comp_high: bool

    @classmethod
    def decode(cls, raw: int) -> "Diagnostics":
        return cls(
            gain=raw & 0xFF,
            offset_compensation_finished=bool((raw >> 8) & 0x1),
            cordic_overflow=bool((raw >> 9) & 0x1),
            comp_low=bool((raw >> 10) & 0x1),
            comp_high=bool((raw >> 11) & 0x1),
        )

    @property
    def magnet_ok(self) -> bool:
        return self.offset_compensation_finished and not (
            self.cordic_overflow or self.comp_low or self.comp_high)


def format_diagnostics(diag: Diagnostics) -> List[str]:
    """Human-readable report lines."""
    return [
        f"AGC Value: {diag.gain}",
        f"Offset Compensation Finished: {int(diag.offset_compensation_finished)}"
        f" - Cordic OverFlow: {int(diag.cordic_overflow)}",
        f"Comp Low: {int(diag.comp_low)} - Comp High: {int(diag.comp_high)}",
    ]
