from barbuilder.timers import TimerQueue


def test_callbacks_fire_in_due_order():
    timers = TimerQueue()
    fired = []
    timers.after(1.0, lambda: fired.append("late"))
    timers.after(0.5, lambda: fired.append("early"))
    timers.after(0.5, lambda: fired.append("early-2"))

    assert timers.advance(0.4) == 0
    assert timers.advance(0.1) == 2
    assert fired == ["early", "early-2"]
    assert timers.now() == 0.5
    timers.advance(1.0)
    assert fired == ["early", "early-2", "late"]
    assert timers.pending == 0


def test_callbacks_scheduled_while_firing_run_inside_window():
    timers = TimerQueue()
    fired = []

    def first():
        fired.append(timers.now())
        timers.after(0.2, lambda: fired.append(timers.now()))

    timers.after(0.1, first)
    timers.advance(1.0)
    assert fired == [0.1, 0.1 + 0.2]


def test_zero_delay_runs_on_run_due():
    timers = TimerQueue(start=5.0)
    fired = []
    timers.after(0, lambda: fired.append(True))
    assert timers.run_due() == 1
    assert fired == [True]
    assert timers.now() == 5.0


def test_failing_callback_does_not_stop_others():
    timers = TimerQueue()
    fired = []

    def boom():
        raise RuntimeError("bad")

    timers.after(0.1, boom)
    timers.after(0.2, lambda: fired.append("ok"))
    assert timers.run_all() == 2
    assert fired == ["ok"]
