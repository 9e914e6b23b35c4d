import pytest

from lighthouse_sensors.platform import (
    STACK_FILL_PATTERN,
    Eeprom,
    HeapArena,
    StackFillChecker,
    format_assert_failure,
    format_memory_info,
    format_uncaught,
)


def test_eeprom_round_trip():
    eeprom = Eeprom(64)
    eeprom.write(10, b"\x01\x02\x03")
    assert eeprom.read(10, 3) == b"\x01\x02\x03"


def test_eeprom_fresh_is_erased():
    eeprom = Eeprom(16)
    assert eeprom.read(0, 16) == bytes([Eeprom.ERASED]) * 16


def test_eeprom_write_does_not_touch_neighbours():
    eeprom = Eeprom(16)
    eeprom.write(4, b"\x00\x00")
    assert eeprom.read(3, 1) == bytes([Eeprom.ERASED])
    assert eeprom.read(6, 1) == bytes([Eeprom.ERASED])


@pytest.mark.parametrize("addr,length", [(-1, 1), (15, 2), (0, 17)])
def test_eeprom_out_of_range_read(addr, length):
    with pytest.raises(IndexError):
        Eeprom(16).read(addr, length)


def test_eeprom_out_of_range_write():
    with pytest.raises(IndexError):
        Eeprom(16).write(14, b"abc")


def test_sbrk_returns_previous_break():
    heap = HeapArena(0x1000, 0x2000, stack_size=0x400)
    assert heap.sbrk(0x10) == 0x1000
    assert heap.sbrk(0x20) == 0x1010
    assert heap.allocated == 0x30


def test_sbrk_exact_fit_then_exhausted():
    heap = HeapArena(0x1000, 0x2000, stack_size=0x400)
    assert heap.sbrk(0xC00) == 0x1000
    assert heap.unallocated == 0
    with pytest.raises(MemoryError):
        heap.sbrk(1)
    assert heap.brk == 0x1C00


def test_sbrk_allocated_plus_unallocated_invariant():
    heap = HeapArena(0x1000, 0x2000, stack_size=0x400)
    for incr in (5, 100, 37):
        heap.sbrk(incr)
        assert heap.allocated + heap.unallocated == heap.limit - heap.heap_start


def test_sbrk_below_heap_start():
    heap = HeapArena(0x1000, 0x2000, stack_size=0x400)
    with pytest.raises(ValueError):
        heap.sbrk(-1)


def test_stack_fill_writes_pattern():
    checker = StackFillChecker(stack_size=256)
    checker.fill(0)
    assert int.from_bytes(checker.memory[0:4], "little") == STACK_FILL_PATTERN


def test_high_water_mark_includes_fill_margin():
    checker = StackFillChecker(stack_size=256)
    checker.fill(32)
    assert checker.high_water_mark(32) == 32 + 64


def test_high_water_mark_after_touch():
    checker = StackFillChecker(stack_size=256)
    checker.fill(0)
    checker.touch(128)
    assert checker.high_water_mark(16) == 128


def test_high_water_mark_all_pattern_returns_frame_offset():
    checker = StackFillChecker(stack_size=256)
    checker.fill(0)
    assert checker.high_water_mark(100) == 100


def test_stack_checker_rejects_bad_offset():
    checker = StackFillChecker(stack_size=256)
    with pytest.raises(ValueError):
        checker.fill(300)


def test_format_memory_info():
    text = format_memory_info(1, 2, 3, 4, 5, 6, 7, 8)
    assert text == "RAM: static 1, heap 2 (used 3, free 4), unalloc 5, stack 6 (used 7, max 8)\n"


def test_format_assert_failure():
    assert format_assert_failure("main", "x > 0") == "assert(x > 0) in main failed.\n"


def test_format_uncaught_with_exception():
    text = format_uncaught(ValueError("bad pin"))
    assert text == "Uncaught exception: ValueError; what() = bad pin\n"


def test_format_uncaught_without_exception():
    assert format_uncaught(None) == "Terminate handler\n"