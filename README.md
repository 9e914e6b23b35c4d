# lighthouse_sensors

Building blocks for processing the light pulses that lighthouse base stations
sweep across photodiode sensors. The package works from timestamps and from
counter values that have already been captured. It runs anywhere and needs no
hardware. It has no dependencies outside the standard library.

## Modules

- `lighthouse_sensors.clock` turns tick counters into 32-bit timestamp ticks.
  - `ticks_from_systick(millis, systick_value, systick_pending, f_cpu, ticks_per_sec)`
    works from a millisecond counter and a SysTick down-counter.
  - `ticks_from_cycle_counter(base_millis, base_clock, cur_clock, f_cpu, ticks_per_sec)`
    works from a millisecond base and a free-running CPU cycle counter.
  - Both raise `ValueError` when the CPU frequency is not a whole multiple of
    the timestamp resolution.
- `lighthouse_sensors.cycle_phase_classifier` has `CyclePhaseClassifier`.
  - `process_pulse_lengths(cycle_idx, pulse_lens)` finds the phase (0..3) of
    the sweep cycle. It compares the sync pulse lengths of the two base
    stations across consecutive cycles.
  - Once the phase fix is confident enough, `get_phase(cycle_idx)` returns the
    phase. Before that it returns -1.
  - `get_data_bits(cycle_idx, pulse_lens)` returns the latest `DataFrameBit`
    of each base station, read from the pulse lengths.
- `lighthouse_sensors.data_frame_decoder` has `DataFrameBit`, `DataFrame` and
  `DataFrameDecoder`.
  - The decoder is a `Producer`. It takes the bits of one base station and
    finds the 17-zero preamble. It then reads the 16-bit frame length, drops
    the set bit that follows each 16-bit word, and skips the CRC.
  - It then produces a `DataFrame` that holds the payload bytes.
  - A bit with a gap in `cycle_idx` resets the decoder.
- `lighthouse_sensors.message_logging` holds the debug logging of pipeline
  stages.
  - `Producer` passes each value to its consumers and to an optional logger.
  - `CountingProducerLogger` counts produced values.
  - `PrintingProducerLogger` keeps the last 16 values and prints them with
    `format_value`.
  - `producer_debug_cmd(producer, words, name, idx)` understands `count`,
    `show` and `off`.
  - `producer_debug_print(producer, stream)` writes the logger's output.
- `lighthouse_sensors.input_ftm` covers FlexTimer dual edge capture inputs.
  - `TeensyModel` selects the board. `FtmDef` and `FtmBank` hold the pin
    tables and the channel allocation.
  - `InputFtmNode` is one input pin. Pins on odd channels are refused, and so
    are pins whose channel is already taken. Both raise `ValidationError`.
  - `FtmBank.handle_interrupt(...)` turns capture registers into `Pulse`
    values.
  - `ftm_pulse_from_capture` does the same for one capture pair.
  - `ftm_prescaler` computes the timer prescaler exponent.
- `lighthouse_sensors.input_cmp` covers analog comparator inputs.
  - It has `ComparatorDef`, `ComparatorBank` and `InputCmpNode`.
  - `InputCmpNode` checks the pin and the threshold (0..63).
  - `dac_level(level)` computes the DAC register value.
  - `handle_interrupt(rising, falling, output_high, cur_time)` turns
    comparator edges into pulses.
- `lighthouse_sensors.input_tim` covers general purpose timer input capture.
  - It has `TimerConfig`, `TIMER_CONFIGS`, `PIN_MAP` and
    `TimerChannelAllocator`. The allocator refuses two pins on the same
    channel pair.
  - `InputTimNode.prescaler(core_clock, ticks_per_sec)` computes the timer
    prescaler.
  - `InputTimNode.handle_interrupt(pulse_stop, pulse_start, cur_time)` turns
    16-bit captures into a `Pulse`.
- `lighthouse_sensors.outputs` provides the outputs.
  - `StreamOutput` wraps any binary stream. `read()` returns -1 when no byte
    is available.
  - `UdpBroadcastOutput` sends each write as one datagram to the subnet
    broadcast address. That address comes from `broadcast_address(local_ip, subnet_mask)`.
  - `create_output(idx, definition, streams)` chooses among the outputs:
    - Index 0 is a stream and needs an entry in `streams`.
    - Indices 1..3 use their stream when one is given, and its bitrate is
      applied on `start()`.
    - Index 2 without a stream is UDP broadcast.
    - Anything else raises `ValueError`.
- `lighthouse_sensors.led_state` holds the status LED patterns.
  - It has `LedState`, `LedPattern` and `PATTERNS`.
  - `LedPatternPlayer.set_state(state)` selects a pattern.
  - `LedPatternPlayer.update(cur_time_ms)` returns the new LED level when a
    step is due, and `None` otherwise.
- `lighthouse_sensors.platform` provides board support helpers:
  - `Eeprom` is byte-addressed storage held in memory and initialised to
    0xFF.
  - `HeapArena.sbrk(incr)` moves the heap break. It raises `MemoryError`
    rather than grow into the reserved stack.
  - `StackFillChecker` measures peak stack use with a fill pattern.
  - `format_memory_info`, `format_assert_failure` and `format_uncaught` build
    diagnostic messages.

## Example: decoding a data frame

```python
from lighthouse_sensors.data_frame_decoder import DataFrameDecoder

decoder = DataFrameDecoder(0)
frames = []
decoder.add_consumer(frames.append)

for bit in bits:           # DataFrameBit values of base station 0, one per cycle
    decoder.consume(bit)

for frame in frames:
    print(frame.base_station_idx, frame.bytes.hex())
```

`bits` stands for your own sequence of `DataFrameBit` values.

## Example: logging what a stage produces

```python
import io
from lighthouse_sensors.message_logging import producer_debug_cmd, producer_debug_print

producer_debug_cmd(decoder, ["show"], "DataFrame", 0)
# ... feed bits ...
out = io.StringIO()
producer_debug_print(decoder, out)
print(out.getvalue())      # "DataFrame0: ..." followed by the recent frames
```

## What it does not do

- It does not talk to hardware. It does not set timer or comparator
  registers, and it does not open serial ports.
- The input modules only model pin allocation and turn captured counter
  values into pulses.
- There is no command-line program and no complete processing pipeline.
  Nothing here turns pulses into sensor angles or object positions, and
  there is no interactive configuration.
- `Eeprom` keeps its contents in memory only. They are not saved anywhere.

## Running the tests

```
pip install -e .[test]
pytest
```