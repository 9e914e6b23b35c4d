import pytest

from lighthouse_sensors.clock import MASK32, ticks_from_cycle_counter, ticks_from_systick

F_CPU = 96_000_000
TICKS = 1_000_000
RELOAD = F_CPU // 1000


def test_systick_just_reloaded_matches_millisecond_base():
    value = ticks_from_systick(7, RELOAD - 1, False, F_CPU, TICKS)
    assert value == ticks_from_cycle_counter(7, 0, 0, F_CPU, TICKS)


def test_systick_progress_is_monotonic():
    values = [ticks_from_systick(3, v, False, F_CPU, TICKS) for v in range(RELOAD - 1, 0, -9600)]
    assert values == sorted(values)
    assert values[0] < values[-1]


def test_pending_systick_adds_one_millisecond():
    plain = ticks_from_systick(10, 1000, False, F_CPU, TICKS)
    pending = ticks_from_systick(10, 1000, True, F_CPU, TICKS)
    assert pending - plain == TICKS // 1000


def test_pending_ignored_near_reload_boundary():
    plain = ticks_from_systick(10, 20, False, F_CPU, TICKS)
    pending = ticks_from_systick(10, 20, True, F_CPU, TICKS)
    assert pending == plain


def test_cycle_counter_wraps_around():
    wrapped = ticks_from_cycle_counter(5, 0xFFFFFFF0, 0x10 + 96 * 4, F_CPU, TICKS)
    straight = ticks_from_cycle_counter(5, 0, 0x20 + 96 * 4, F_CPU, TICKS)
    assert wrapped == straight


def test_result_is_32_bit():
    value = ticks_from_cycle_counter(10**7, 0, 0, F_CPU, TICKS)
    assert 0 <= value <= MASK32


def test_frequency_must_be_multiple_of_resolution():
    with pytest.raises(ValueError):
        ticks_from_systick(0, 0, False, 96_000_001, TICKS)


def test_systick_value_out_of_range():
    with pytest.raises(ValueError):
        ticks_from_systick(0, RELOAD, False, F_CPU, TICKS)