"""Pulse input through the analog comparator modules.

Each comparator raises an interrupt when its input crosses a threshold set by
a 6-bit DAC, so the threshold can be adjusted; pulse timing is taken in the
interrupt handler.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .input_ftm import MASK32, Pulse, TeensyModel, ValidationError

NA = -1  # Pin not available.
NUM_THRESHOLD_LEVELS = 64
REFERENCE_INPUT = 7  # The DAC output is comparator input 7.
_DACCR_ENABLE = 0x80
_DACCR_VDD_REFERENCE = 0x40


@dataclass(frozen=True)
class ComparatorDef:
    """Board pins of the inputs of one comparator (DAC0=100, DAC1=101)."""

    name: str
    input_pins: Tuple[int, ...]


COMPARATOR_DEFS: Dict[TeensyModel, Tuple[ComparatorDef, ...]] = {
    TeensyModel.MK20DX128: (
        ComparatorDef("CMP0", (11, 12, 28, 27, NA, NA)),
        ComparatorDef("CMP1", (23, 9, NA, NA, NA, NA)),
    ),
    TeensyModel.MK20DX256: (
        ComparatorDef("CMP0", (11, 12, 28, 27, 29, NA)),
        ComparatorDef("CMP1", (23, 9, NA, 100, NA, NA)),
        ComparatorDef("CMP2", (3, 4, NA, NA, NA, NA)),
    ),
    TeensyModel.MK64FX512: (
        ComparatorDef("CMP0", (11, 12, 35, 36, 101, NA)),
        ComparatorDef("CMP1", (23, 9, NA, 100, NA, NA)),
        ComparatorDef("CMP2", (3, 4, NA, 101, NA, NA)),
    ),
    TeensyModel.MK66FX1M0: (
        ComparatorDef("CMP0", (11, 12, 35, 36, 101, NA)),
        ComparatorDef("CMP1", (23, 9, NA, 100, NA, NA)),
        ComparatorDef("CMP2", (3, 4, NA, 101, NA, NA)),
        ComparatorDef("CMP3", (NA, 27, 28, NA, NA, NA)),
    ),
}


class ComparatorBank:
    """The comparators of one board and the inputs registered on them."""

    def __init__(self, model: TeensyModel = TeensyModel.MK20DX256) -> None:
        self.model = TeensyModel(model)
        self.defs = COMPARATOR_DEFS[self.model]
        self._used: List[Optional["InputCmpNode"]] = [None] * len(self.defs)

    def find_pin(self, pin: int) -> Optional[Tuple[int, int]]:
        """Return (comparator_idx, input_idx) of the pin, the last match winning."""
        if pin == NA:
            return None
        found = None
        for cmp_idx, cmp_def in enumerate(self.defs):
            for input_idx, input_pin in enumerate(cmp_def.input_pins):
                if input_pin == pin:
                    found = (cmp_idx, input_idx)
        return found

    def node_at(self, cmp_idx: int) -> Optional["InputCmpNode"]:
        return self._used[cmp_idx]


class InputCmpNode:
    """An input pin served by one comparator with a DAC threshold."""

    def __init__(
        self,
        bank: ComparatorBank,
        input_idx: int,
        pin: int,
        pulse_polarity: bool = True,
        initial_threshold: int = 0,
        on_pulse: Optional[Callable[[Pulse], None]] = None,
    ) -> None:
        location = bank.find_pin(pin)
        if location is None:
            raise ValidationError(f"Pin {pin} is not supported for 'cmp' input type.")
        cmp_idx, cmp_input_idx = location

        other = bank.node_at(cmp_idx)
        if other is not None:
            raise ValidationError(
                f"Can't use pin {pin} for a 'cmp' input type: CMP{cmp_idx} is already in use "
                f"by pin {bank.defs[cmp_idx].input_pins[other.cmp_input_idx]}."
            )
        if not 0 <= initial_threshold < NUM_THRESHOLD_LEVELS:
            raise ValidationError(
                f"Invalid threshold value for 'cmp' input type on pin {pin}. Supported values: 0-63"
            )

        self.bank = bank
        self.input_idx = input_idx
        self.pin = pin
        self.pulse_polarity = pulse_polarity
        self.threshold = initial_threshold
        self.on_pulse = on_pulse
        self.cmp_idx = cmp_idx
        self.cmp_input_idx = cmp_input_idx
        self._rise_time = 0
        self._rise_valid = False
        bank._used[cmp_idx] = self
        self._closed = False

    @property
    def mux_inputs(self) -> Tuple[int, int]:
        """Return the (plus, minus) comparator inputs."""
        if self.pulse_polarity:
            return self.cmp_input_idx, REFERENCE_INPUT
        return REFERENCE_INPUT, self.cmp_input_idx

    def dac_level(self, level: int) -> int:
        """Return the DAC control register value for a threshold level 0..63."""
        if not 0 <= level < NUM_THRESHOLD_LEVELS:
            raise ValueError(f"Threshold level {level} out of range 0..63")
        if not self.pulse_polarity:
            level = NUM_THRESHOLD_LEVELS - 1 - level
        return _DACCR_ENABLE | _DACCR_VDD_REFERENCE | level

    def handle_interrupt(
        self, rising: bool, falling: bool, output_high: bool, cur_time: int
    ) -> Optional[Pulse]:
        """Track edges; return the pulse completed by a falling edge, if any."""
        pulse = None
        if self._rise_valid and falling:
            pulse = Pulse(self.input_idx, self._rise_time, (cur_time - self._rise_time) & MASK32)
            if self.on_pulse is not None:
                self.on_pulse(pulse)
            self._rise_valid = False
        if rising and output_high:
            self._rise_time = cur_time & MASK32
            self._rise_valid = True
        return pulse

    def close(self) -> None:
        """Free the comparator for other inputs."""
        if not self._closed:
            if self.bank._used[self.cmp_idx] is self:
                self.bank._used[self.cmp_idx] = None
            self._closed = True

    def __enter__(self) -> "InputCmpNode":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()