import io

from lighthouse_sensors.cycle_phase_classifier import CyclePhaseClassifier

REF = CyclePhaseClassifier()
SHIFT = 1


def pulses(phase, data=(False, False)):
    axis = bool(phase & 1)
    return [round(REF.expected_pulse_len((phase >> 1) != b, data[b], axis)) for b in range(2)]


def feed(clf, cycles, start=1):
    for c in range(start, start + cycles):
        clf.process_pulse_lengths(c, pulses((c + SHIFT) & 3))


def test_no_phase_without_pulses():
    assert CyclePhaseClassifier().get_phase(5) == -1


def test_fix_acquired_after_enough_cycles():
    clf = CyclePhaseClassifier()
    feed(clf, 4)
    assert clf.get_phase(4) == -1
    feed(clf, 1, start=5)
    for c in range(5, 12):
        assert clf.get_phase(c) == (c + SHIFT) & 3


def test_expected_pulse_len_ordering():
    clf = CyclePhaseClassifier()
    lens = [clf.expected_pulse_len(bool(code & 4), bool(code & 2), bool(code & 1)) for code in range(8)]
    assert lens == sorted(lens)
    assert lens[0] == clf.pulse_base_len


def test_missing_pulse_does_not_advance():
    clf = CyclePhaseClassifier()
    for c in range(1, 20):
        clf.process_pulse_lengths(c, [0, 100])
    assert clf.get_phase(3) == -1


def test_data_bits_decoded():
    clf = CyclePhaseClassifier()
    feed(clf, 10)
    for c, data in [(11, (True, False)), (12, (False, True)), (13, (True, True))]:
        phase = (c + SHIFT) & 3
        bits = clf.get_data_bits(c, pulses(phase, data))
        assert [b.bit for b in bits] == list(data)
        assert [b.cycle_idx for b in bits] == [c, c]
        assert [b.base_station_idx for b in bits] == [0, 1]


def test_data_bits_need_fix():
    clf = CyclePhaseClassifier()
    bits = clf.get_data_bits(3, pulses(0, (True, True)))
    assert [b.cycle_idx for b in bits] == [0, 0]


def test_returned_bits_are_copies():
    clf = CyclePhaseClassifier()
    feed(clf, 10)
    first = clf.get_data_bits(11, pulses((11 + SHIFT) & 3, (True, True)))
    clf.get_data_bits(12, pulses((12 + SHIFT) & 3, (False, False)))
    assert [b.bit for b in first] == [True, True]


def test_reset_drops_fix():
    clf = CyclePhaseClassifier()
    feed(clf, 10)
    clf.reset()
    assert clf.get_phase(11) == -1


def test_debug_print_toggle():
    clf = CyclePhaseClassifier()
    out = io.StringIO()
    clf.debug_print(out)
    assert out.getvalue() == ""
    assert clf.debug_cmd(["phase", "show"]) is True
    clf.debug_print(out)
    assert out.getvalue().startswith("CyclePhaseClassifier: fix 0, phase")
    assert clf.debug_cmd(["phase", "off"]) is True
    assert clf.debug_cmd(["phase", "bogus"]) is False