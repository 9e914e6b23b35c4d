"""Decoding of base station data frames from a stream of single bits."""

import re
from dataclasses import dataclass
from typing import Sequence, TextIO

from .message_logging import Producer, producer_debug_cmd, producer_debug_print

PREAMBLE_LEN = 17
_DEBUG_WORD = re.compile(r"dataframe(\d+)")


@dataclass
class DataFrameBit:
    """One data bit carried by a base station sync pulse; time is in microseconds."""

    base_station_idx: int
    cycle_idx: int
    bit: bool
    time: int = 0

    def format_log(self) -> str:
        return (
            f"\n{self.time // 1000}ms: base {self.base_station_idx}, "
            f"cycle {self.cycle_idx}, bit {int(self.bit)} "
        )


@dataclass
class DataFrame:
    """A complete data frame; time is in microseconds."""

    time: int
    base_station_idx: int
    bytes: bytes

    def format_log(self) -> str:
        data = "".join(f"{b:02X} " for b in self.bytes)
        return f"\n{self.time // 1000}ms: bytes {data}"


class DataFrameDecoder(Producer):
    """Assembles frame bits of one base station into DataFrames."""

    def __init__(self, base_station_idx: int) -> None:
        super().__init__()
        self.base_station_idx = base_station_idx
        self._data_idx = 0
        self.reset()

    def reset(self) -> None:
        self._prev_cycle_idx = 0
        self._skip_one_set_bit = False
        self._preamble_len = 0
        self._cur_byte = 0
        self._cur_bit_idx = 0
        self._frame_len = 0
        self._bytes = bytearray()

    def consume(self, frame_bit: DataFrameBit) -> None:
        if frame_bit.base_station_idx != self.base_station_idx:
            return

        if self._prev_cycle_idx != 0 and frame_bit.cycle_idx != self._prev_cycle_idx + 1:
            self.reset()
            return
        self._prev_cycle_idx = frame_bit.cycle_idx

        bit = bool(frame_bit.bit)

        if self._skip_one_set_bit:
            if bit:
                self._skip_one_set_bit = False
            else:
                self.reset()
            return

        if self._preamble_len != PREAMBLE_LEN:
            if bit:
                self._preamble_len = 0
            else:
                self._preamble_len += 1
                if self._preamble_len == PREAMBLE_LEN:
                    self._skip_one_set_bit = True
                    self._data_idx = -2  # Two bytes of frame length come first.
            return

        self._cur_byte = ((self._cur_byte << 1) | bit) & 0xFF
        self._cur_bit_idx += 1
        if self._cur_bit_idx != 8:
            return

        # A set bit follows every 16-bit word.
        if self._data_idx & 1:
            self._skip_one_set_bit = True

        if self._data_idx < 0:
            self._frame_len |= self._cur_byte << ((2 + self._data_idx) * 8)
        elif self._data_idx < self._frame_len:
            self._bytes.append(self._cur_byte)
        self._cur_byte = 0
        self._cur_bit_idx = 0
        self._data_idx += 1

        # Payload rounded up to words, then a CRC32 that is skipped.
        if self._data_idx == (self._frame_len | 1) + 4:
            self.produce(DataFrame(frame_bit.time, self.base_station_idx, bytes(self._bytes)))
            self.reset()

    def debug_cmd(self, words: Sequence[str]) -> bool:
        if not words:
            return False
        match = _DEBUG_WORD.fullmatch(words[0])
        if match and int(match.group(1)) == self.base_station_idx:
            return producer_debug_cmd(self, words[1:], "DataFrame", self.base_station_idx)
        return False

    def debug_print(self, stream: TextIO) -> None:
        producer_debug_print(self, stream)