from pushup_alarm.common.events import EventType
from pushup_alarm.counter.machine import MachineConfig, RepetitionStateMachine, RepState


def _run(machine, progresses, down_ok=True, up_ok=True):
    return [machine.advance(p, True, down_ok, up_ok) for p in progresses]


def test_single_cycle_fires_once():
    events = []
    m = RepetitionStateMachine(on_rep=events.append)
    done = _run(m, [10] * 12 + [80] * 12 + [10] * 12)
    assert sum(done) == 1
    assert len(events) == 1
    assert events[0].type == EventType.REP
    assert events[0].rep_count == 1
    assert m.count == 1
    assert m.state == RepState.UP


def test_event_only_on_return_to_up():
    events = []
    m = RepetitionStateMachine(on_rep=events.append)
    _run(m, [10] * 12 + [80] * 20)
    assert m.state == RepState.DOWN
    assert events == []


def test_count_is_monotonic_over_many_cycles():
    m = RepetitionStateMachine()
    seen = []
    for _ in range(5):
        for p in [10] * 11 + [90] * 11 + [5] * 11:
            m.advance(p)
            seen.append(m.count)
    assert seen == sorted(seen)
    assert m.count == 5


def test_secondary_metric_must_corroborate():
    m = RepetitionStateMachine()
    _run(m, [10] * 12)
    _run(m, [80] * 12, down_ok=False)
    assert m.state == RepState.UP
    _run(m, [80] * 2)
    assert m.state == RepState.DOWN
    _run(m, [10] * 12, up_ok=False)
    assert m.state == RepState.DOWN and m.count == 0


def test_needs_consecutive_valid_frames():
    m = RepetitionStateMachine()
    _run(m, [10] * 9)
    m.advance(0, valid=False)
    assert m.stable_frames == 0
    _run(m, [80] * 9)
    assert m.state == RepState.UP
    m.advance(80)
    assert m.state == RepState.DOWN


def test_invalid_sample_keeps_state_and_count():
    m = RepetitionStateMachine()
    _run(m, [10] * 12 + [80] * 2)
    assert m.state == RepState.DOWN
    assert m.advance(10, valid=False) is False
    assert m.state == RepState.DOWN and m.count == 0


def test_invalid_sample_keeps_calibration():
    m = RepetitionStateMachine()
    m.feed(0.3)
    m.feed(0.5)
    m.feed(0.0, valid=False)
    assert m.calibrator.span > 0.19


def test_no_transition_before_calibration():
    m = RepetitionStateMachine()
    for i in range(60):
        m.feed(0.30 + 0.04 * (i % 2), down_ok=True, up_ok=True)
    assert m.state == RepState.UP
    assert m.count == 0
    assert not m.calibrator.calibrated


def test_feed_calibrates_and_counts():
    m = RepetitionStateMachine()
    for _ in range(12):
        m.feed(0.30)
    for _ in range(12):
        m.feed(0.47)
    assert m.state == RepState.DOWN
    for _ in range(12):
        m.feed(0.30)
    assert m.count == 1


def test_manual_count_debounce():
    events = []
    m = RepetitionStateMachine(on_rep=events.append)
    assert m.count_manual(t=10.0)
    assert not m.count_manual(t=10.5)
    assert m.count == 1
    assert m.count_manual(t=10.9)
    assert m.count == 2
    assert [e.source for e in events] == ["manual", "manual"]


def test_manual_gap_is_configurable():
    m = RepetitionStateMachine(MachineConfig(manual_min_gap_s=1.0))
    assert m.count_manual(t=0.0)
    assert not m.count_manual(t=0.9)
    assert m.count_manual(t=1.0)


def test_manual_count_uses_clock():
    now = [100.0]
    m = RepetitionStateMachine(clock=lambda: now[0])
    assert m.count_manual()
    now[0] = 100.3
    assert not m.count_manual()
    now[0] = 101.0
    assert m.count_manual()


def test_reset_is_idempotent():
    m = RepetitionStateMachine()
    for p in [0.3] * 12 + [0.5] * 12:
        m.feed(p)
    m.count_manual(t=0.0)
    m.reset()
    m.reset()
    assert m.state == RepState.UP
    assert m.count == 0
    assert m.stable_frames == 0
    assert m.calibrator.span == 0.0
    assert m.count_manual(t=0.1)


def test_callback_error_does_not_break_counting():
    def boom(ev):
        raise RuntimeError("ui went away")

    m = RepetitionStateMachine(on_rep=boom)
    _run(m, [10] * 12 + [80] * 2 + [10] * 2)
    assert m.count == 1


def test_state_changes_are_traced():
    traces = []
    m = RepetitionStateMachine(debug_cb=traces.append, session_id="s1")
    _run(m, [10] * 12 + [80] + [10])
    msgs = [t["msg"] for t in traces]
    assert msgs == ["state→DOWN", "state→UP"]
    assert all(t["session_id"] == "s1" for t in traces)
