"""Pulse input through general purpose timers in input capture mode.

Each input pin uses a pair of capture channels of one timer: the pin's own
channel captures the end of the pulse and raises the interrupt, the paired
channel (indirect input) captures its start. Two pins whose channels form the
same pair cannot be used together.

    Timer   CH1     CH2     CH3     CH4     Bits
    TIM1    --      TX      RX      --      16
    TIM2    LED     LED     LED     --      32
    TIM3    D3/A4   D2/A5   --      --      16
    TIM4    D1      D0      --      --      16
    TIM5    WKP     --      --      --      32
    TIM8    B1      --      B0      --      16

Pins D0-D7 are 0..7, A0-A7 are 10..17 (WKP is A7), RX/TX are 18/19 and
B0-B5 are 24..29.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from .input_ftm import MASK32, Pulse, ValidationError

MASK16 = 0xFFFF
NUM_CHANNELS = 4
TOTAL_PINS = 36
# Delays since the end of the pulse above this are a counter overflow artefact.
_OVERFLOW_GUARD = 0xFF00


@dataclass(frozen=True)
class TimerConfig:
    """Static description of one timer module."""

    name: str
    apb_bus: int
    clock_divider: int
    bits: int


TIMER_CONFIGS: Tuple[TimerConfig, ...] = (
    TimerConfig("TIM1", 2, 1, 16),
    TimerConfig("TIM2", 1, 2, 32),
    TimerConfig("TIM3", 1, 2, 16),
    TimerConfig("TIM4", 1, 2, 16),
    TimerConfig("TIM5", 1, 2, 32),
    TimerConfig("TIM8", 2, 1, 16),
)

# Board pin -> (timer index into TIMER_CONFIGS, channel index 0..3).
PIN_MAP: Dict[int, Tuple[int, int]] = {
    19: (0, 1),
    18: (0, 2),
    3: (2, 0),
    14: (2, 0),
    2: (2, 1),
    15: (2, 1),
    1: (3, 0),
    0: (3, 1),
    17: (4, 0),
    25: (5, 0),
    24: (5, 2),
}


class Edge(Enum):
    RISING = "rising"
    FALLING = "falling"


class TimerChannelAllocator:
    """Tracks which pin uses each channel pair of each timer."""

    def __init__(
        self,
        pin_map: Optional[Mapping[int, Tuple[int, int]]] = None,
        total_pins: int = TOTAL_PINS,
    ) -> None:
        self.pin_map = dict(PIN_MAP if pin_map is None else pin_map)
        self.total_pins = total_pins
        self._pairs: List[List[Optional[int]]] = [
            [None] * (NUM_CHANNELS // 2) for _ in TIMER_CONFIGS
        ]

    def locate(self, pin: int) -> Tuple[int, int]:
        """Return (timer_idx, channel_idx) serving the pin."""
        if pin >= self.total_pins:
            raise ValidationError(f"Pin number too large: {pin}")
        location = self.pin_map.get(pin)
        if location is None:
            raise ValidationError(f"Pin {pin} is not connected to any timer")
        return location

    def owner(self, timer_idx: int, channel_idx: int) -> Optional[int]:
        """Return the pin using the channel pair, or None if it is free."""
        return self._pairs[timer_idx][channel_idx // 2]

    def allocate(self, pin: int, timer_idx: int, channel_idx: int) -> None:
        other = self.owner(timer_idx, channel_idx)
        if other is not None:
            raise ValidationError(f"Pin {pin} conflicts with pin {other} (same channel pair).")
        self._pairs[timer_idx][channel_idx // 2] = pin

    def release(self, timer_idx: int, channel_idx: int) -> None:
        self._pairs[timer_idx][channel_idx // 2] = None


class InputTimNode:
    """An input pin captured by a pair of timer channels."""

    def __init__(
        self,
        allocator: TimerChannelAllocator,
        input_idx: int,
        pin: int,
        pulse_polarity: bool = True,
        on_pulse: Optional[Callable[[Pulse], None]] = None,
    ) -> None:
        self.timer_idx, self.channel_idx = allocator.locate(pin)
        allocator.allocate(pin, self.timer_idx, self.channel_idx)
        self.allocator = allocator
        self.input_idx = input_idx
        self.pin = pin
        self.pulse_polarity = pulse_polarity
        self.on_pulse = on_pulse
        self._closed = False

    @property
    def timer(self) -> TimerConfig:
        return TIMER_CONFIGS[self.timer_idx]

    @property
    def paired_channel_idx(self) -> int:
        return self.channel_idx ^ 1

    @property
    def capture_edges(self) -> Tuple[Edge, Edge]:
        """Return the edges captured by (own channel, paired channel)."""
        if self.pulse_polarity:
            return Edge.FALLING, Edge.RISING
        return Edge.RISING, Edge.FALLING

    def prescaler(self, core_clock: int, ticks_per_sec: int) -> int:
        """Return the prescaler that makes timer ticks equal timestamp ticks."""
        if ticks_per_sec <= 0 or core_clock % (2 * ticks_per_sec):
            raise ValueError("Time resolution must be a whole number of timer ticks")
        value = core_clock // self.timer.clock_divider // ticks_per_sec - 1
        if value > MASK16:
            raise ValueError(f"Prescaler {value} does not fit in 16 bits")
        return value

    @staticmethod
    def counter_sync_value(cur_time: int) -> int:
        """Return the counter value that keeps the timer in step with the timestamp."""
        return cur_time & MASK16

    def handle_interrupt(self, pulse_stop: int, pulse_start: int, cur_time: int) -> Pulse:
        """Build the pulse from the two capture registers and the current timestamp.

        The pulse and the delay since its end must fit in one 16-bit timer period.
        """
        pulse_len = (pulse_stop - pulse_start) & MASK16
        since_stop = ((cur_time & MASK16) - pulse_stop) & MASK16
        if since_stop > _OVERFLOW_GUARD:
            since_stop = 0
        start_time = (cur_time - since_stop - pulse_len) & MASK32
        pulse = Pulse(self.input_idx, start_time, pulse_len)
        if self.on_pulse is not None:
            self.on_pulse(pulse)
        return pulse

    def close(self) -> None:
        """Free the channel pair for other inputs."""
        if not self._closed:
            self.allocator.release(self.timer_idx, self.channel_idx)
            self._closed = True

    def __enter__(self) -> "InputTimNode":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()