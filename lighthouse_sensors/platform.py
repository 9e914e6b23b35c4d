"""Board support helpers: EEPROM storage, heap growth, stack usage and diagnostics."""

import errno
from typing import Optional

STACK_SIZE = 4096
STACK_FILL_PATTERN = 0xFAAFBABA
# The fill stops this many bytes below the caller's frame to spare its locals.
_FILL_FRAME_MARGIN = 64
_WORD = 4


class Eeprom:
    """Byte-addressed persistent storage, initialised on first access."""

    ERASED = 0xFF

    def __init__(self, size: int = 2048) -> None:
        if size <= 0:
            raise ValueError("EEPROM size must be positive")
        self.size = size
        self._data: Optional[bytearray] = None

    def _storage(self) -> bytearray:
        if self._data is None:
            self._data = bytearray([self.ERASED]) * self.size
        return self._data

    def _check_range(self, addr: int, length: int) -> None:
        if addr < 0 or length < 0 or addr + length > self.size:
            raise IndexError(
                f"EEPROM access {addr}..{addr + length} outside 0..{self.size}"
            )

    def read(self, addr: int, length: int) -> bytes:
        self._check_range(addr, length)
        return bytes(self._storage()[addr:addr + length])

    def write(self, addr: int, data: bytes) -> None:
        self._check_range(addr, len(data))
        self._storage()[addr:addr + len(data)] = data


class HeapArena:
    """Heap break that grows up towards a reserved stack at the end of RAM."""

    def __init__(self, heap_start: int, ram_end: int, stack_size: int = STACK_SIZE) -> None:
        if not heap_start <= ram_end - stack_size:
            raise ValueError("Heap start lies inside the reserved stack")
        self.heap_start = heap_start
        self.ram_end = ram_end
        self.stack_size = stack_size
        self.brk = heap_start

    @property
    def limit(self) -> int:
        return self.ram_end - self.stack_size

    @property
    def allocated(self) -> int:
        return self.brk - self.heap_start

    @property
    def unallocated(self) -> int:
        return self.limit - self.brk

    def sbrk(self, incr: int) -> int:
        """Move the break by incr bytes and return the previous break."""
        new_brk = self.brk + incr
        if new_brk > self.limit:
            raise MemoryError(errno.ENOMEM, "Heap would grow into the stack")
        if new_brk < self.heap_start:
            raise ValueError("Heap break cannot move below the heap start")
        prev, self.brk = self.brk, new_brk
        return prev


class StackFillChecker:
    """Measures peak stack use by painting free stack with a pattern.

    Offsets are in bytes below the top of the stack; a frame offset is the
    depth of the current stack frame.
    """

    def __init__(self, stack_size: int = STACK_SIZE, pattern: int = STACK_FILL_PATTERN) -> None:
        if stack_size <= 0 or stack_size % _WORD:
            raise ValueError("Stack size must be a positive multiple of 4")
        self.stack_size = stack_size
        self._pattern = pattern.to_bytes(_WORD, "little")
        self.memory = bytearray(stack_size)

    def _check_offset(self, frame_offset: int) -> None:
        if not 0 <= frame_offset <= self.stack_size:
            raise ValueError(f"Frame offset {frame_offset} outside 0..{self.stack_size}")

    def fill(self, frame_offset: int) -> None:
        """Paint the stack below the current frame, leaving a safety margin."""
        self._check_offset(frame_offset)
        limit = self.stack_size - frame_offset - _FILL_FRAME_MARGIN
        for start in range(0, max(limit, 0), _WORD):
            self.memory[start:start + _WORD] = self._pattern

    def touch(self, depth: int) -> None:
        """Simulate stack use down to depth bytes below the top."""
        self._check_offset(depth)
        self.memory[self.stack_size - depth:] = bytes(depth)

    def high_water_mark(self, frame_offset: int) -> int:
        """Return the largest stack depth in bytes used so far."""
        self._check_offset(frame_offset)
        for start in range(0, self.stack_size - frame_offset, _WORD):
            if self.memory[start:start + _WORD] != self._pattern:
                return self.stack_size - start
        return frame_offset


def format_memory_info(
    static_size: int,
    heap_size: int,
    heap_used: int,
    heap_free: int,
    unallocated: int,
    stack_size: int,
    stack_used: int,
    stack_max: int,
) -> str:
    return (
        f"RAM: static {static_size}, heap {heap_size} (used {heap_used}, free {heap_free}), "
        f"unalloc {unallocated}, stack {stack_size} (used {stack_used}, max {stack_max})\n"
    )


def format_assert_failure(function_name: str, expression: str) -> str:
    return f"assert({expression}) in {function_name} failed.\n"


def format_uncaught(exc: Optional[BaseException]) -> str:
    """Describe an exception that reached the top level, or a bare termination."""
    if exc is None:
        return "Terminate handler\n"
    return f"Uncaught exception: {type(exc).__name__}; what() = {exc}\n"