import pytest

from lighthouse_sensors.input_cmp import ComparatorBank, InputCmpNode
from lighthouse_sensors.input_ftm import MASK32, Pulse, TeensyModel, ValidationError


@pytest.mark.parametrize("pin, expected", [(11, (0, 0)), (29, (0, 4)), (100, (1, 3)), (4, (2, 1))])
def test_find_pin_teensy31(pin, expected):
    assert ComparatorBank(TeensyModel.MK20DX256).find_pin(pin) == expected


def test_find_pin_last_match_wins():
    assert ComparatorBank(TeensyModel.MK64FX512).find_pin(101) == (2, 3)


def test_find_pin_not_available():
    assert ComparatorBank(TeensyModel.MK20DX128).find_pin(3) is None
    assert ComparatorBank().find_pin(-1) is None


def test_unsupported_pin():
    with pytest.raises(ValidationError, match="not supported"):
        InputCmpNode(ComparatorBank(), 0, 5)


def test_comparator_conflict_reported_before_threshold():
    bank = ComparatorBank()
    InputCmpNode(bank, 0, 11)
    with pytest.raises(ValidationError, match="already in use by pin 11"):
        InputCmpNode(bank, 1, 12, initial_threshold=64)


def test_invalid_threshold():
    with pytest.raises(ValidationError, match="Supported values: 0-63"):
        InputCmpNode(ComparatorBank(), 0, 11, initial_threshold=64)


def test_close_releases_comparator():
    bank = ComparatorBank()
    with InputCmpNode(bank, 0, 3):
        assert bank.node_at(2) is not None
    node = InputCmpNode(bank, 1, 4)
    assert bank.node_at(2) is node


def test_dac_level_inverted_for_negative_polarity():
    bank = ComparatorBank()
    positive = InputCmpNode(bank, 0, 11, pulse_polarity=True)
    negative = InputCmpNode(bank, 1, 3, pulse_polarity=False)
    for level in (0, 10, 63):
        assert negative.dac_level(level) == positive.dac_level(63 - level)
    with pytest.raises(ValueError):
        positive.dac_level(64)


def test_mux_inputs_follow_polarity():
    bank = ComparatorBank()
    positive = InputCmpNode(bank, 0, 27, pulse_polarity=True)
    negative = InputCmpNode(bank, 1, 3, pulse_polarity=False)
    assert positive.mux_inputs == (3, 7)
    assert negative.mux_inputs == (7, 0)


def test_rise_then_fall_produces_pulse():
    received = []
    node = InputCmpNode(ComparatorBank(), 4, 11, on_pulse=received.append)
    assert node.handle_interrupt(True, False, True, 100) is None
    pulse = node.handle_interrupt(False, True, False, 150)
    assert pulse == Pulse(4, 100, 50)
    assert received == [pulse]
    assert node.handle_interrupt(False, True, False, 200) is None


def test_fall_without_rise_is_ignored():
    node = InputCmpNode(ComparatorBank(), 0, 11)
    assert node.handle_interrupt(False, True, False, 10) is None
    assert node.handle_interrupt(True, False, False, 20) is None
    assert node.handle_interrupt(False, True, False, 30) is None


def test_pulse_across_timestamp_wrap():
    node = InputCmpNode(ComparatorBank(), 0, 11)
    node.handle_interrupt(True, False, True, MASK32 - 15)
    pulse = node.handle_interrupt(False, True, False, 16)
    assert (pulse.start_time + pulse.pulse_len) & MASK32 == 16


def test_fall_and_new_rise_in_one_interrupt():
    node = InputCmpNode(ComparatorBank(), 0, 11)
    node.handle_interrupt(True, False, True, 10)
    first = node.handle_interrupt(True, True, True, 40)
    second = node.handle_interrupt(False, True, False, 70)
    assert first.start_time == 10
    assert second.start_time == 40