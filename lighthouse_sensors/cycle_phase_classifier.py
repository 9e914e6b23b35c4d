"""Phase tracking of the base station sweep cycle and extraction of data bits."""

from dataclasses import replace
from enum import IntEnum
from typing import Sequence, TextIO, Tuple

from .data_frame_decoder import DataFrameBit

NUM_BASE_STATIONS = 2
MASK32 = 0xFFFFFFFF
_PULSE_LEN_STEP_US = 10.416
_INITIAL_PULSE_BASE_LEN_US = 62.5
_MAX_BIT_ERROR_US = 5.0
# Phase from the last two "first pulse longer" comparisons.
_PHASE_BY_HISTORY = (1, 2, 0, 3)


class PhaseFix(IntEnum):
    NONE = 0
    CANDIDATE = 1
    ACQUIRED = 4
    FINAL = 16


class CyclePhaseClassifier:
    """Finds the cycle phase from sync pulse lengths and reads data bits from them."""

    def __init__(self) -> None:
        self._phase_history = 0
        self._phase_shift = 0
        self._average_error = 0.0
        self._debug_print_state = False
        self._bits = [DataFrameBit(b, 0, False) for b in range(NUM_BASE_STATIONS)]
        self.reset()

    def reset(self) -> None:
        self._fix_level = int(PhaseFix.NONE)
        self._prev_full_cycle_idx = MASK32
        self.pulse_base_len = _INITIAL_PULSE_BASE_LEN_US
        for b, bit in enumerate(self._bits):
            bit.base_station_idx = b
            bit.cycle_idx = 0

    def process_pulse_lengths(self, cycle_idx: int, pulse_lens: Sequence[int]) -> None:
        cur_phase_id = -1
        if pulse_lens[0] > 0 and pulse_lens[1] > 0:
            cur_more = int(pulse_lens[0] > pulse_lens[1])
            if cycle_idx == (self._prev_full_cycle_idx + 1) & MASK32:
                self._phase_history = ((self._phase_history << 1) | cur_more) & MASK32
                cur_phase_id = _PHASE_BY_HISTORY[self._phase_history & 0x3]
            else:
                self._phase_history = cur_more
            self._prev_full_cycle_idx = cycle_idx

        if cur_phase_id >= 0 and self._fix_level < PhaseFix.FINAL:
            if self._fix_level == PhaseFix.NONE:
                self._fix_level = int(PhaseFix.CANDIDATE)
                self._phase_shift = (cur_phase_id - cycle_idx) & 0x3
            else:
                expected = (cycle_idx + self._phase_shift) & 0x3
                self._fix_level += 1 if cur_phase_id == expected else -1

    def expected_pulse_len(self, skip: bool, data: bool, axis: bool) -> float:
        code = (int(bool(skip)) << 2) | (int(bool(data)) << 1) | int(bool(axis))
        return self.pulse_base_len + code * _PULSE_LEN_STEP_US

    def get_data_bits(self, cycle_idx: int, pulse_lens: Sequence[int]) -> Tuple[DataFrameBit, ...]:
        """Return the latest data bit of each base station."""
        phase_id = self.get_phase(cycle_idx)
        if phase_id >= 0:
            for b in range(NUM_BASE_STATIONS):
                if pulse_lens[b] <= 0:
                    continue
                skip = (phase_id >> 1) != b
                axis = bool(phase_id & 0x1)
                mid_len = (
                    self.expected_pulse_len(skip, True, axis)
                    + self.expected_pulse_len(skip, False, axis)
                ) * 0.5
                pulse_len = int(pulse_lens[b])
                bit = pulse_len > mid_len

                error = pulse_len - self.expected_pulse_len(skip, bit, axis)
                self.pulse_base_len += error * 0.1
                abs_error = abs(error)
                self._average_error = self._average_error * 0.9 + abs_error * 0.1

                if abs_error < _MAX_BIT_ERROR_US:
                    self._bits[b].bit = bit
                    self._bits[b].cycle_idx = cycle_idx
        return tuple(replace(bit) for bit in self._bits)

    def get_phase(self, cycle_idx: int) -> int:
        """Return the phase 0..3 of the cycle, or -1 without a fix."""
        if self._fix_level >= PhaseFix.ACQUIRED:
            return (cycle_idx + self._phase_shift) & 0x3
        return -1

    def debug_cmd(self, words: Sequence[str]) -> bool:
        if len(words) >= 2 and words[0] == "phase":
            if words[1] == "show":
                self._debug_print_state = True
                return True
            if words[1] == "off":
                self._debug_print_state = False
                return True
        return False

    def debug_print(self, stream: TextIO) -> None:
        if self._debug_print_state:
            stream.write(
                f"CyclePhaseClassifier: fix {self._fix_level}, phase {self._phase_shift}, "
                f"pulse_base_len {self.pulse_base_len:f}, history 0x{self._phase_history:x}, "
                f"avg error {self._average_error:.1f} us\n"
            )