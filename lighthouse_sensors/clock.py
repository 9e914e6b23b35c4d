"""Conversion of raw hardware counters into timestamp ticks."""

MASK32 = 0xFFFFFFFF

# A pending SysTick interrupt only counts if the counter has clearly reloaded.
_SYSTICK_PENDING_GUARD = 50


def _cpu_cycles_per_tick(f_cpu: int, ticks_per_sec: int) -> int:
    if ticks_per_sec <= 0 or ticks_per_sec % 1000:
        raise ValueError("ticks_per_sec must be a positive multiple of 1000")
    if f_cpu <= 0 or f_cpu % ticks_per_sec:
        raise ValueError("CPU frequency must be a whole multiple of the timestamp resolution")
    return f_cpu // ticks_per_sec


def ticks_from_systick(
    millis: int,
    systick_value: int,
    systick_pending: bool,
    f_cpu: int,
    ticks_per_sec: int,
) -> int:
    """Return the 32-bit timestamp from the millisecond counter and the SysTick down-counter."""
    cycles_per_tick = _cpu_cycles_per_tick(f_cpu, ticks_per_sec)
    reload = f_cpu // 1000
    if not 0 <= systick_value < reload:
        raise ValueError(f"SysTick value {systick_value} out of range 0..{reload - 1}")
    if systick_pending and systick_value > _SYSTICK_PENDING_GUARD:
        millis += 1
    elapsed_cycles = (reload - 1) - systick_value
    return (millis * (ticks_per_sec // 1000) + elapsed_cycles // cycles_per_tick) & MASK32


def ticks_from_cycle_counter(
    base_millis: int,
    base_clock: int,
    cur_clock: int,
    f_cpu: int,
    ticks_per_sec: int,
) -> int:
    """Return the 32-bit timestamp from a millisecond base and a free-running cycle counter."""
    cycles_per_tick = _cpu_cycles_per_tick(f_cpu, ticks_per_sec)
    elapsed_cycles = (cur_clock - base_clock) & MASK32
    return (base_millis * (ticks_per_sec // 1000) + elapsed_cycles // cycles_per_tick) & MASK32