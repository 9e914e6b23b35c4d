"""Status LED patterns driven by the tracker state."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class LedState(IntEnum):
    NOT_INITIALIZED = 0
    CONFIG_MODE = 1
    NO_FIX = 2
    FIX_FOUND = 3


@dataclass(frozen=True)
class LedPattern:
    """A blinking pattern: one character per period, '1' means on."""

    period_ms: int
    pattern: str


PATTERNS = {
    LedState.NOT_INITIALIZED: LedPattern(1000, "0"),
    LedState.CONFIG_MODE: LedPattern(200, "10100000"),
    LedState.NO_FIX: LedPattern(500, "10"),
    LedState.FIX_FOUND: LedPattern(30, "10"),
}


class LedPatternPlayer:
    """Steps through the pattern of the current state at the pattern's period."""

    def __init__(self) -> None:
        self.state = LedState.NOT_INITIALIZED
        self._pattern_idx = 0
        self._prev_called_ms = 0

    def set_state(self, state: LedState) -> None:
        state = LedState(state)
        if state != self.state:
            self.state = state
            self._pattern_idx = 0

    def update(self, cur_time_ms: int) -> Optional[bool]:
        """Return the new LED level if a step is due, otherwise None."""
        pattern = PATTERNS[self.state]
        if cur_time_ms - self._prev_called_ms < pattern.period_ms:
            return None
        self._prev_called_ms = cur_time_ms
        level = pattern.pattern[self._pattern_idx] == "1"
        self._pattern_idx = (self._pattern_idx + 1) % len(pattern.pattern)
        return level