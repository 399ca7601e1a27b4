"""
Difficulty grouping of gestures.

Every gesture pair (left, right) costs `len(left) + len(right)` dialing steps.
The optimizer hands out keys in that order: cheap gestures go to frequent keys.
"""

import itertools
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from stickdial.core.encoder import Gesture, difficulty

GesturePair = Tuple[Gesture, Gesture]


def enumerate_gestures(sector_count: int, max_length: int) -> List[Gesture]:
    """
    Return every non-empty single stick gesture up to `max_length` steps.

    Gestures are ordered by length, then lexicographically. Consecutive steps always
    differ, so there are `n * (n - 1) ** (k - 1)` gestures of length k for n sectors.
    """
    gestures: List[Gesture] = []

    for length in range(1, max_length + 1):
        for steps in itertools.product(range(sector_count), repeat=length):
            if all(a != b for a, b in zip(steps, steps[1:])):
                gestures.append(tuple(steps))

    return gestures


@dataclass
class DifficultyTier:
    """Single stick gestures sharing one difficulty."""

    difficulty: int
    left: List[GesturePair] = field(default_factory=list)
    right: List[GesturePair] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.left) + len(self.right)


def single_stick_tiers(sector_count: int, max_length: int) -> List[DifficultyTier]:
    """
    Group the gestures made with one stick only, in ascending difficulty.

    Each tier lists the left stick gestures `(g, ())` and the right stick gestures
    `((), g)` of that difficulty in enumeration order.
    """
    tiers = {}

    for gesture in enumerate_gestures(sector_count, max_length):
        tier = tiers.setdefault(len(gesture), DifficultyTier(len(gesture)))
        tier.left.append((gesture, ()))
        tier.right.append(((), gesture))

    return [tiers[d] for d in sorted(tiers)]


def combined_gestures(
    sector_count: int, max_length: int, max_difficulty: Optional[int] = None
) -> List[GesturePair]:
    """
    Return the gesture pairs that move both sticks, easiest first.

    Ties are broken lexicographically on (left, right). Pairs harder than
    `max_difficulty` are left out.
    """
    gestures = enumerate_gestures(sector_count, max_length)

    pairs = [
        (left, right)
        for left in gestures
        for right in gestures
        if max_difficulty is None or difficulty(left, right) <= max_difficulty
    ]
    pairs.sort(key=lambda p: (difficulty(*p), p))

    return pairs


def withdraw_keys(keys: Sequence[str], count: int) -> Tuple[List[str], List[str]]:
    """
    Split a frequency sorted key list into the first `count` keys and the rest.
    """
    return list(keys[:count]), list(keys[count:])
