from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from stickdial.config import StickConfig
from stickdial.core.encoder import Gesture, difficulty, encode_gesture
from stickdial.core.sectors import StickState


class RecognizerState(Enum):
    """
    Possible states of a single stick recognizer.
    """

    IDLE = 0
    """The stick rests in the center zone."""

    ACTIVE = 1
    """The stick is outside the center zone and a gesture is being recorded."""


@dataclass(frozen=True)
class CompletedInput:
    """
    This class represents the gestures made by both sticks during one input episode.
    """

    left: Gesture
    """Gesture of the left stick, empty if it never left center."""

    right: Gesture
    """Gesture of the right stick, empty if it never left center."""

    def __post_init__(self) -> None:
        for side, gesture in (("left", self.left), ("right", self.right)):
            if any(a == b for a, b in zip(gesture, gesture[1:])):
                raise ValueError(f"Malformed {side} gesture {gesture}: repeated sector")

    @property
    def key(self) -> Tuple[Gesture, Gesture]:
        """
        The lookup key of the input in an action mapping table.
        """
        return self.left, self.right

    @property
    def difficulty(self) -> int:
        """
        Total number of dialing steps made by both sticks.
        """
        return difficulty(self.left, self.right)

    @property
    def is_empty(self) -> bool:
        return not self.left and not self.right


class GestureRecognizer:
    """
    State machine that records the sectors visited by one stick.

    The recognizer is IDLE while the stick is centered. Leaving the center zone
    starts a new sequence; every change of sector is appended until the length
    cap is reached, after which further changes are ignored. Returning to center
    finalizes the sequence into a gesture and clears it.
    """

    def __init__(self, max_length: Optional[int] = None) -> None:
        self.max_length = max_length if max_length is not None else StickConfig.MAX_GESTURE_LENGTH
        " Maximum number of sectors recorded per excursion. "

        self.state = RecognizerState.IDLE
        " Current state of the machine. "

        self._sequence: List[int] = []

    @property
    def is_idle(self) -> bool:
        return self.state == RecognizerState.IDLE

    @property
    def sequence(self) -> Gesture:
        """
        Sectors recorded so far in the current excursion.
        """
        return tuple(self._sequence)

    def update(self, stick: StickState) -> Optional[Gesture]:
        """
        Feed the classified state of one sample.
        Return the finished gesture when the stick has just returned to center, None otherwise.

        :param stick: State of the stick for this tick.
        """

        if self.state == RecognizerState.IDLE:
            if not stick.is_center:
                self.state = RecognizerState.ACTIVE
                self._sequence = [stick.sector]
            return None

        if stick.is_center:
            gesture = encode_gesture(self._sequence, self.max_length)
            self.reset()
            return gesture

        if stick.sector != self._sequence[-1] and len(self._sequence) < self.max_length:
            self._sequence.append(stick.sector)

        return None

    def reset(self) -> None:
        """
        Drop the current excursion and go back to IDLE.
        """
        self.state = RecognizerState.IDLE
        self._sequence = []


class InputAggregator:
    """
    This class is responsible for pairing the gestures of the two sticks.
    It owns one recognizer per stick and is updated once per tick with both stick states.

    A `CompletedInput` is produced when both sticks are back at center and at least one of them
    made a gesture since the last input. The sticks may start and stop independently; the
    aggregator waits until both have settled.
    """

    def __init__(self, max_length: Optional[int] = None) -> None:
        self.max_length = max_length if max_length is not None else StickConfig.MAX_GESTURE_LENGTH

        self.left = GestureRecognizer(self.max_length)
        self.right = GestureRecognizer(self.max_length)

        self._pending: List[Gesture] = [(), ()]

    @property
    def is_idle(self) -> bool:
        """
        Whether both sticks rest at center.
        """
        return self.left.is_idle and self.right.is_idle

    def update(self, left: StickState, right: StickState) -> Optional[CompletedInput]:
        """
        Feed both stick states of one tick and return the completed input, if any.

        :param left: State of the left stick.
        :param right: State of the right stick.
        """

        for i, (recognizer, stick) in enumerate(((self.left, left), (self.right, right))):
            gesture = recognizer.update(stick)
            if gesture:
                # A second excursion in the same episode extends the first one
                self._pending[i] = encode_gesture(self._pending[i] + gesture, self.max_length)

        if not self.is_idle or not any(self._pending):
            return None

        result = CompletedInput(self._pending[0], self._pending[1])
        self._pending = [(), ()]
        return result

    def reset(self) -> None:
        """
        Discard every partial gesture of the current episode.
        """
        self.left.reset()
        self.right.reset()
        self._pending = [(), ()]
