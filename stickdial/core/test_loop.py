import threading
import time

import pytest

from stickdial.core.loop import PollingLoop, ReplaySource, StickFrame, StickSource
from stickdial.dispatch.dispatcher import ActionDispatcher, LoggingKeyEmitter
from stickdial.dispatch.mapping_table import ActionMappingTable
from stickdial.optimizer.mapping_builder import layer_modifiers

CENTER = (0.0, 0.0)
RIGHT = (1.0, 0.0)
UP = (0.0, 1.0)
LEFT = (-1.0, 0.0)
DOWN = (0.0, -1.0)


def make_loop(frames, modifiers=(), **kwargs):
    table = ActionMappingTable({
        ((0,), ()): 'e',
        ((), (2, 3)): 'x',
        ((0,), (2, 3)): 'q',
        ((1, 0), ()): 'enter',
    }, sector_count=4, max_length=2)
    emitter = LoggingKeyEmitter()
    dispatcher = ActionDispatcher(layer_modifiers(table, modifiers), emitter)

    params = dict(threshold=0.5, sector_count=4, max_length=2, rate_hz=100)
    params.update(kwargs)
    loop = PollingLoop(ReplaySource(frames), dispatcher, **params)
    return loop, dispatcher, emitter


class ClosingSource(StickSource):
    def __init__(self):
        self.closed = False

    def poll(self):
        return StickFrame(RIGHT, CENTER)

    def close(self):
        self.closed = True


def test_replayed_gestures_are_typed():
    frames = [
        StickFrame(CENTER, CENTER),
        StickFrame(RIGHT, CENTER),
        StickFrame(CENTER, CENTER),
        StickFrame(CENTER, LEFT),
        StickFrame(CENTER, DOWN),
        StickFrame(CENTER, CENTER),
        StickFrame(UP, CENTER),
        StickFrame(RIGHT, CENTER),
        StickFrame(CENTER, CENTER),
    ]
    loop, dispatcher, emitter = make_loop(frames)

    loop.run(threading.Event(), realtime=False)

    assert emitter.events == [['e'], ['x'], ['enter']]
    assert loop.stats == {'ticks': 9, 'inputs': 3, 'late_ticks': 0}
    assert dispatcher.misses == 0


def test_both_sticks_form_one_input():
    frames = [
        StickFrame(RIGHT, CENTER),
        StickFrame(CENTER, LEFT),
        StickFrame(CENTER, DOWN),
        StickFrame(CENTER, CENTER),
    ]
    loop, _, emitter = make_loop(frames)

    loop.run(threading.Event(), realtime=False)

    assert emitter.events == [['q']]


def test_unmapped_input_is_counted():
    frames = [StickFrame(DOWN, CENTER), StickFrame(CENTER, CENTER)]
    loop, dispatcher, emitter = make_loop(frames)

    loop.run(threading.Event(), realtime=False)

    assert loop.inputs == 1
    assert emitter.events == []
    assert dispatcher.misses == 1


def test_modifiers_select_layer():
    frames = [
        StickFrame(RIGHT, CENTER),
        StickFrame(CENTER, CENTER, frozenset({'shift'})),
    ]
    loop, _, emitter = make_loop(frames, modifiers=('shift',))

    loop.run(threading.Event(), realtime=False)

    assert emitter.events == [['shift', 'e']]


def test_release_threshold_holds_active_stick():
    loop, _, emitter = make_loop([], release_threshold=0.3)

    assert loop.tick(StickFrame((0.6, 0.0), CENTER)) is None
    # Inside the center zone but outside the release radius
    assert loop.tick(StickFrame((0.4, 0.0), CENTER)) is None
    assert loop.tick(StickFrame((0.2, 0.0), CENTER)) is not None
    assert emitter.events == [['e']]

    loop, _, emitter = make_loop([])
    loop.tick(StickFrame((0.6, 0.0), CENTER))
    assert loop.tick(StickFrame((0.4, 0.0), CENTER)) is not None


def test_stop_event_and_max_ticks():
    source = ClosingSource()
    loop, _, _ = make_loop([])
    loop.source = source

    stop_event = threading.Event()
    stop_event.set()
    loop.run(stop_event)
    assert loop.ticks == 0
    assert source.closed

    loop.run(threading.Event(), max_ticks=3, realtime=True)
    assert loop.ticks == 3
    # The partial gesture is discarded on exit
    assert loop.aggregator.is_idle


def test_csv_recording(tmp_path):
    samples = tmp_path / "session.csv"
    samples.write_text(
        "lx,ly,rx,ry,modifiers\n"
        "1.0,0.0,0.0,0.0,\n"
        "0.0,0.0,0.0,0.0,shift\n"
        "0.0,0.0,-1.0,0.0,\n"
        "0.0,0.0,0.0,-1.0,\n"
        "0.0,0.0,0.0,0.0,\n"
    )
    loop, _, emitter = make_loop([], modifiers=('shift',))
    loop.source = ReplaySource.from_csv(samples)

    loop.run(threading.Event(), realtime=False)

    assert emitter.events == [['shift', 'e'], ['x']]


def test_malformed_csv_recording(tmp_path):
    samples = tmp_path / "broken.csv"
    samples.write_text("lx,ly,rx,ry\n1.0,zero,0.0,0.0\n")

    with pytest.raises(ValueError):
        ReplaySource.from_csv(samples)


def test_invalid_parameters():
    with pytest.raises(ValueError):
        make_loop([], threshold=1.5)
    with pytest.raises(ValueError):
        make_loop([], release_threshold=0.7)
    with pytest.raises(ValueError):
        make_loop([], rate_hz=0)


class StallingSource(StickSource):
    """Blocks for `delay` seconds on the first `slow` polls, then answers at once."""

    def __init__(self, slow, delay):
        self.slow = slow
        self.delay = delay
        self.polls = 0

    def poll(self):
        self.polls += 1
        if self.polls <= self.slow:
            time.sleep(self.delay)
        return StickFrame(CENTER, CENTER)


def test_late_ticks_are_counted():
    loop, _, _ = make_loop([], rate_hz=1000)
    loop.source = StallingSource(slow=5, delay=0.01)

    loop.run(threading.Event(), max_ticks=5)

    assert loop.ticks == 5
    assert loop.late_ticks == 5


def test_deadline_restarts_after_late_tick():
    # Once the stall is over the loop keeps the rate instead of rushing to catch up
    loop, _, _ = make_loop([], rate_hz=20)
    loop.source = StallingSource(slow=3, delay=0.1)

    start = time.perf_counter()
    loop.run(threading.Event(), max_ticks=6)
    elapsed = time.perf_counter() - start

    assert loop.late_ticks == 3
    assert elapsed >= 3 * 0.1 + 3 * 0.05 - 0.01
