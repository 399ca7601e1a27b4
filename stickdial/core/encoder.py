"""
Gesture encoding for stickdial.

A gesture is the canonical identity of one stick's excursion from the center
zone: the ordered tuple of sectors it was dialed through. Two excursions that
reduce to the same tuple are the same gesture.
"""

from typing import Iterable, Optional, Tuple, Union

from stickdial.core.sectors import StickState

Gesture = Tuple[int, ...]
"""Ordered sector indices, possibly empty (stick never left center)."""

ARROWS = ('→', '↑', '←', '↓')
EMPTY_MARK = '·'


def _sector_of(step: Union[int, StickState, None]) -> Optional[int]:
    if step is None:
        return None
    if isinstance(step, StickState):
        return step.sector
    return int(step)


def encode_gesture(
    sequence: Iterable[Union[int, StickState, None]], max_length: Optional[int] = None
) -> Gesture:
    """
    Canonicalize a raw sector sequence into a `Gesture`.

    No-op steps (None or centered states) are dropped wherever they appear,
    consecutive repeats are collapsed and the result is cut to `max_length`
    steps. Applying the function to its own output returns it unchanged.

    :param sequence: Sector indices or `StickState` values in the order they were visited.
    :param max_length: Maximum number of steps to keep, None for no limit.
    """
    steps = []

    for step in sequence:
        sector = _sector_of(step)
        if sector is None:
            continue
        if steps and steps[-1] == sector:
            continue
        steps.append(sector)

    if max_length is not None:
        steps = steps[:max_length]

    return tuple(steps)


def is_valid_gesture(gesture: Gesture, sector_count: int, max_length: int) -> bool:
    """
    Whether `gesture` could have been produced by the recognizer.
    """
    if len(gesture) > max_length:
        return False

    for i, sector in enumerate(gesture):
        if not isinstance(sector, int) or isinstance(sector, bool):
            return False
        if not 0 <= sector < sector_count:
            return False
        if i > 0 and gesture[i - 1] == sector:
            return False

    return True


def difficulty(left: Gesture, right: Gesture) -> int:
    """
    Typing effort of a gesture pair: the total number of dialing steps.
    """
    return len(left) + len(right)


def describe_gesture(gesture: Gesture, sector_count: int = 4) -> str:
    """
    Human readable rendering, e.g. '↑→' for (1, 0).
    """
    if not gesture:
        return EMPTY_MARK
    if sector_count != len(ARROWS):
        return '-'.join(str(s) for s in gesture)
    return ''.join(ARROWS[s] for s in gesture)
