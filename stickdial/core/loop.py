"""
Fixed-rate polling loop for stickdial.

Each tick samples both sticks, classifies them, advances the gesture recognizers
and dispatches the completed input, if any. Everything in a tick is synchronous
and non-blocking; the loop only sleeps between ticks to hold the sample rate.
"""

import csv
import logging
import signal
import time
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Iterator, Optional, Tuple

from stickdial.config import LoopConfig, StickConfig, check_stick_parameters
from stickdial.core.recognizer import CompletedInput, InputAggregator
from stickdial.core.sectors import classify_axis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StickFrame:
    """One sample of both sticks."""

    left: Tuple[float, float]
    "Left stick (x, y), y pointing up."

    right: Tuple[float, float]
    "Right stick (x, y), y pointing up."

    modifiers: FrozenSet[str] = field(default_factory=frozenset)
    "Modifier buttons held during the sample."


class StickSource:
    """
    Interface of a stick sample provider (gamepad, recording, ...).
    """

    def poll(self) -> Optional[StickFrame]:
        """
        Return the current sample of both sticks, or None when the source is exhausted.
        """
        raise NotImplementedError

    def close(self) -> None:
        pass


class ReplaySource(StickSource):
    """
    Replays recorded stick samples, one per poll.

    Recordings are CSV files with the columns lx, ly, rx, ry and an optional
    modifiers column ('+' separated names, e.g. 'shift' or 'ctrl+shift').
    """

    def __init__(self, frames: Iterable[StickFrame]):
        self._frames: Iterator[StickFrame] = iter(frames)

    @classmethod
    def from_csv(cls, filename) -> "ReplaySource":
        """
        Load a recording.

        Args:
            filename (str): Path to the CSV file

        Raises:
            ValueError: If a row cannot be parsed
        """
        frames = []

        with open(filename, 'r', newline='') as f:
            reader = csv.DictReader(f)
            for line, row in enumerate(reader, start=2):
                try:
                    modifiers = (row.get('modifiers') or '').strip()
                    frames.append(StickFrame(
                        (float(row['lx']), float(row['ly'])),
                        (float(row['rx']), float(row['ry'])),
                        frozenset(m for m in modifiers.split('+') if m),
                    ))
                except (KeyError, TypeError, ValueError) as e:
                    raise ValueError(f"{filename}:{line}: malformed sample row ({e})") from e

        logger.info(f"Loaded {len(frames)} samples from {filename}")
        return cls(frames)

    def poll(self):
        return next(self._frames, None)


class PollingLoop:
    """
    Samples a stick source at a fixed rate and turns the samples into key events.
    """

    def __init__(self, source: StickSource, dispatcher, threshold=None, release_threshold=None,
                 sector_count=None, max_length=None, rate_hz=None):
        """
        Initialize the loop.

        Args:
            source (StickSource): Provider of stick samples
            dispatcher (ActionDispatcher): Resolves completed inputs into key events
            threshold (float, optional): Center zone radius. If None, uses config default.
            release_threshold (float, optional): Radius to return to center once active.
                If None, uses config default (or `threshold` when that is unset too).
            sector_count (int, optional): Number of sectors. If None, uses config default.
            max_length (int, optional): Dialing steps per stick. If None, uses config default.
            rate_hz (float, optional): Ticks per second. If None, uses config default.
        """
        self.source = source
        self.dispatcher = dispatcher

        self.threshold = threshold if threshold is not None else StickConfig.CENTER_THRESHOLD
        if release_threshold is None:
            release_threshold = StickConfig.RELEASE_THRESHOLD
        self.release_threshold = release_threshold if release_threshold is not None else self.threshold
        self.sector_count = sector_count if sector_count is not None else StickConfig.SECTOR_COUNT
        self.max_length = max_length if max_length is not None else StickConfig.MAX_GESTURE_LENGTH
        self.rate_hz = rate_hz if rate_hz is not None else LoopConfig.SAMPLE_RATE_HZ

        check_stick_parameters(self.threshold, self.release_threshold, self.sector_count, self.max_length)
        if self.rate_hz <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.rate_hz}")

        self.aggregator = InputAggregator(self.max_length)

        self.ticks = 0
        self.inputs = 0
        self.late_ticks = 0

    def _classify(self, sample, recognizer):
        # An active stick stays out until it drops below the release radius
        threshold = self.threshold if recognizer.is_idle else self.release_threshold
        return classify_axis(sample[0], sample[1], threshold, self.sector_count)

    def tick(self, frame: StickFrame) -> Optional[CompletedInput]:
        """
        Process one sample of both sticks.

        Args:
            frame (StickFrame): Current stick sample

        Returns:
            CompletedInput: The input completed by this sample, if any
        """
        self.ticks += 1

        left = self._classify(frame.left, self.aggregator.left)
        right = self._classify(frame.right, self.aggregator.right)

        completed = self.aggregator.update(left, right)
        if completed is not None:
            self.inputs += 1
            self.dispatcher.dispatch(completed, frame.modifiers)

        return completed

    def run(self, stop_event, max_ticks=None, realtime=True):
        """
        Poll the source until it is exhausted, `stop_event` is set or `max_ticks` ticks ran.

        Partial gestures are dropped when the loop exits.

        Args:
            stop_event (threading.Event): Event to signal shutdown
            max_ticks (int, optional): Stop after this many ticks
            realtime (bool): Hold the sample rate. If False, ticks run back to back (replay).
        """
        period = 1.0 / self.rate_hz
        deadline = time.perf_counter()

        logger.info(f"Starting polling loop at {self.rate_hz} Hz (threshold {self.threshold}, "
                    f"{self.sector_count} sectors, {self.max_length} steps)")

        try:
            while not stop_event.is_set():
                if max_ticks is not None and self.ticks >= max_ticks:
                    break

                frame = self.source.poll()
                if frame is None:
                    logger.info("Stick source exhausted")
                    break

                self.tick(frame)

                if not realtime:
                    continue

                deadline += period
                delay = deadline - time.perf_counter()
                if delay > 0:
                    time.sleep(delay)
                else:
                    self.late_ticks += 1
                    # Do not try to catch up: samples are only meaningful in real time
                    deadline = time.perf_counter()
                    if self.late_ticks % LoopConfig.LATE_TICK_WARN_EVERY == 0:
                        logger.warning(f"{self.late_ticks} ticks missed their deadline")
        finally:
            self.aggregator.reset()
            self.source.close()

        logger.info(
            f"Polling loop stopped: {self.ticks} ticks, {self.inputs} inputs, "
            f"{self.late_ticks} late ticks, dispatcher {self.dispatcher.stats}"
        )

    @property
    def stats(self):
        return {
            'ticks': self.ticks,
            'inputs': self.inputs,
            'late_ticks': self.late_ticks,
        }


def setup_signal_handler(stop_event):
    """
    Setup signal handler for graceful shutdown.

    Args:
        stop_event (threading.Event): Event to signal on interrupt
    """
    def signal_handler(sig, frame):
        logger.info("Signal received, shutting down...")
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
