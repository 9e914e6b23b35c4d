"""Pulse input through the FlexTimer modules in dual edge capture mode.

Each input pin uses a pair of timer channels: the even channel captures the
start of the pulse and the odd one its end. Only pins routed to an even
channel can be used.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

MASK16 = 0xFFFF
MASK32 = 0xFFFFFFFF
NUM_CHANNELS = 8
NA = 0  # Pin not available.


class ValidationError(ValueError):
    """Raised when an input definition cannot be served by the hardware."""


class TeensyModel(Enum):
    MK20DX128 = "MK20DX128"  # Teensy 3.0
    MK20DX256 = "MK20DX256"  # Teensy 3.1, 3.2
    MK64FX512 = "MK64FX512"  # Teensy 3.5
    MK66FX1M0 = "MK66FX1M0"  # Teensy 3.6


@dataclass(frozen=True)
class Pulse:
    """A detected pulse; times are in timestamp ticks."""

    input_idx: int
    start_time: int
    pulse_len: int


@dataclass(frozen=True)
class FtmDef:
    """Pins of each channel of one timer module and their pin mux settings."""

    name: str
    channel_pins: Tuple[Tuple[int, ...], ...]
    pin_mux: Tuple[int, ...]


_FTM0_K20 = FtmDef(
    "FTM0",
    ((NA, 22), (33, 23), (24, 9), (NA, 10), (NA, 6), (NA, 20), (NA, 21), (NA, 5)),
    (3, 4),
)
_FTM1_K20 = FtmDef("FTM1", ((3, 16), (4, 17)), (3, 3))
_FTM2_K20 = FtmDef("FTM2", ((32, NA), (25, NA)), (3, 3))

_K6X_DEFS = (
    FtmDef(
        "FTM0",
        ((NA, 22), (NA, 23), (25, 9, 13), (NA, 10), (NA, 6), (NA, 20), (NA, 21), (NA, 5)),
        (3, 4, 7),
    ),
    FtmDef("FTM1", ((NA, 3, 16), (NA, 4, 17)), (3, 3, 3)),
    FtmDef("FTM2", ((NA, 29), (NA, 30)), (3, 3)),
    FtmDef(
        "FTM3",
        ((NA, NA, 2), (NA, NA, 14), (NA, NA, 7), (NA, NA, 8),
         (NA, 35), (56, 36), (57, 37), (NA, 38)),
        (6, 3, 4),
    ),
)

FTM_DEFS: Dict[TeensyModel, Tuple[FtmDef, ...]] = {
    TeensyModel.MK20DX128: (_FTM0_K20, _FTM1_K20),
    TeensyModel.MK20DX256: (_FTM0_K20, _FTM1_K20, _FTM2_K20),
    TeensyModel.MK64FX512: _K6X_DEFS,
    TeensyModel.MK66FX1M0: _K6X_DEFS,
}


def ftm_prescaler(bus_frequency: int, ticks_per_sec: int) -> int:
    """Return the prescaler exponent that makes timer ticks equal timestamp ticks."""
    if ticks_per_sec <= 0 or bus_frequency % ticks_per_sec:
        raise ValueError("Timestamp unit must be a divisor of the bus frequency")
    ratio = bus_frequency // ticks_per_sec
    if ratio & (ratio - 1):
        raise ValueError("Bus frequency / timestamp unit must be a power of 2")
    prescaler = ratio.bit_length() - 1
    if prescaler >= 8:
        raise ValueError("Bus frequency / timestamp unit must be <= 128")
    return prescaler


def ftm_pulse_from_capture(start: int, end: int, timer_count: int, cur_time: int) -> Tuple[int, int]:
    """Return (start_time, pulse_len) from 16-bit captures and the current counter.

    Both the pulse and the delay since its end must fit in one 16-bit timer period.
    """
    pulse_len = (end - start) & MASK16
    delay_from_end = (timer_count - end) & MASK16
    end_time = (cur_time - delay_from_end) & MASK32
    return (end_time - pulse_len) & MASK32, pulse_len


class FtmBank:
    """The timer modules of one board and the inputs registered on their channels."""

    def __init__(self, model: TeensyModel = TeensyModel.MK20DX256) -> None:
        self.model = TeensyModel(model)
        self.defs = FTM_DEFS[self.model]
        self._used: List[List[Optional["InputFtmNode"]]] = [
            [None] * NUM_CHANNELS for _ in self.defs
        ]

    def find_pin(self, pin: int) -> Optional[Tuple[int, int, int]]:
        """Return (ftm_idx, channel_idx, alt_idx) of the pin, the last match winning."""
        found = None
        for ftm_idx, ftm_def in enumerate(self.defs):
            for ch_idx, pins in enumerate(ftm_def.channel_pins):
                for alt, channel_pin in enumerate(pins):
                    if channel_pin == pin:
                        found = (ftm_idx, ch_idx, alt)
        return found

    def node_at(self, ftm_idx: int, channel_idx: int) -> Optional["InputFtmNode"]:
        return self._used[ftm_idx][channel_idx]

    def _register(self, node: "InputFtmNode") -> None:
        self._used[node.ftm_idx][node.channel_idx] = node

    def _release(self, node: "InputFtmNode") -> None:
        if self._used[node.ftm_idx][node.channel_idx] is node:
            self._used[node.ftm_idx][node.channel_idx] = None

    def handle_interrupt(
        self,
        ftm_idx: int,
        status: int,
        timer_count: int,
        captures: Sequence[int],
        cur_time: int,
    ) -> List[Pulse]:
        """Turn the capture registers of a timer into pulses of its registered inputs."""
        pulses: List[Pulse] = []
        if not status:
            return pulses
        for ch in range(0, NUM_CHANNELS, 2):
            node = self._used[ftm_idx][ch]
            if (status >> ch) & 2 and node is not None:
                start_time, pulse_len = ftm_pulse_from_capture(
                    captures[ch], captures[ch + 1], timer_count, cur_time
                )
                pulses.append(node.enqueue_pulse(start_time, pulse_len))
        return pulses


class InputFtmNode:
    """An input pin served by a pair of timer channels."""

    def __init__(
        self,
        bank: FtmBank,
        input_idx: int,
        pin: int,
        pulse_polarity: bool = True,
        on_pulse: Optional[Callable[[Pulse], None]] = None,
    ) -> None:
        self.bank = bank
        self.input_idx = input_idx
        self.pin = pin
        self.pulse_polarity = pulse_polarity
        self.on_pulse = on_pulse

        location = bank.find_pin(pin) if pin != NA else None
        if location is None or location[1] & 1:
            raise ValidationError(f"Pin {pin} is not supported for 'timer' input type.")
        self.ftm_idx, self.channel_idx, self.channel_alt = location

        other = bank.node_at(self.ftm_idx, self.channel_idx)
        if other is not None:
            raise ValidationError(
                f"Can't use pin {pin} for a 'timer' input type: FTM{self.ftm_idx} channel "
                f"{self.channel_idx} is already in use by pin {other.pin}."
            )
        bank._register(self)
        self._closed = False

    @property
    def pin_mux(self) -> int:
        return self.bank.defs[self.ftm_idx].pin_mux[self.channel_alt]

    def enqueue_pulse(self, start_time: int, pulse_len: int) -> Pulse:
        pulse = Pulse(self.input_idx, start_time, pulse_len)
        if self.on_pulse is not None:
            self.on_pulse(pulse)
        return pulse

    def close(self) -> None:
        """Free the channel pair for other inputs."""
        if not self._closed:
            self.bank._release(self)
            self._closed = True

    def __enter__(self) -> "InputFtmNode":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()