"""
Key usage statistics for the keymap optimizer.

The optimizer consumes two tables produced by an external key logger:
- key frequencies: how often each key is typed
- co-occurrence: how often two keys are typed in immediate succession

Both are read from a JSON file of the form

    {
        "frequencies": {"e": 100, "t": 85},
        "cooccurrence": [["e", "r", 12], ["t", "h", 30]]
    }

or counted from a sample text with `KeyStatistics.from_text`.
"""

import json
import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Tuple

logger = logging.getLogger(__name__)

# Characters that do not name themselves as keys
CHARACTER_KEYS = {
    ' ': 'space',
    '\n': 'enter',
    '\t': 'tab',
    '+': 'plus',
}


class StatisticsError(ValueError):
    """Raised when key statistics are malformed."""


def _check_weight(value, what):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise StatisticsError(f"{what} must be a number, got {value!r}")
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise StatisticsError(f"{what} must be a finite non-negative number, got {value!r}")
    return float(value)


def _check_key(value):
    if not isinstance(value, str) or not value:
        raise StatisticsError(f"Key names must be non-empty strings, got {value!r}")
    if '+' in value:
        raise StatisticsError(f"Key names cannot contain '+' (name the plus key 'plus'), got {value!r}")
    return value


@dataclass(frozen=True)
class KeyStatistics:
    """
    Immutable key frequency table and undirected co-occurrence weights.
    """

    frequencies: Mapping[str, float]
    "Relative usage count per key."

    cooccurrence: Mapping[FrozenSet[str], float] = field(default_factory=dict)
    "Weight of each unordered key pair typed in immediate succession."

    def __post_init__(self):
        frequencies = {
            _check_key(k): _check_weight(v, f"Frequency of {k!r}")
            for k, v in self.frequencies.items()
        }

        cooccurrence: Dict[FrozenSet[str], float] = {}
        for pair, weight in self.cooccurrence.items():
            pair = frozenset(pair)
            weight = _check_weight(weight, f"Co-occurrence of {sorted(pair)}")
            if len(pair) != 2:
                # Repeated keys ("ee") cannot be split between sticks
                continue
            for key in pair:
                if key not in frequencies:
                    raise StatisticsError(f"Co-occurrence names unknown key {key!r}")
            cooccurrence[pair] = cooccurrence.get(pair, 0.0) + weight

        object.__setattr__(self, 'frequencies', MappingProxyType(frequencies))
        object.__setattr__(self, 'cooccurrence', MappingProxyType(cooccurrence))

    @classmethod
    def from_dict(cls, data) -> "KeyStatistics":
        """
        Build statistics from the JSON document layout described in the module docstring.

        Raises:
            StatisticsError: If the document does not have the expected shape
        """
        if not isinstance(data, dict) or not isinstance(data.get('frequencies'), dict):
            raise StatisticsError("Statistics must contain a 'frequencies' object")

        raw_pairs = data.get('cooccurrence', [])
        if not isinstance(raw_pairs, list):
            raise StatisticsError("'cooccurrence' must be a list of [key, key, weight] entries")

        pairs: Dict[FrozenSet[str], float] = {}
        for entry in raw_pairs:
            if not isinstance(entry, (list, tuple)) or len(entry) != 3:
                raise StatisticsError(f"Malformed co-occurrence entry {entry!r}")
            a, b, weight = entry
            pair = frozenset((_check_key(a), _check_key(b)))
            pairs[pair] = pairs.get(pair, 0.0) + _check_weight(weight, f"Co-occurrence of {a!r}/{b!r}")

        return cls(data['frequencies'], pairs)

    @classmethod
    def from_text(cls, text: str) -> "KeyStatistics":
        """
        Count key frequencies and adjacent key pairs in a sample text.

        Letters are folded to lower case; whitespace characters are named after their keys.
        """
        keys = [CHARACTER_KEYS.get(ch, ch) for ch in text.lower() if ch != '\r']

        frequencies = Counter(keys)
        pairs: Counter = Counter()
        for a, b in zip(keys, keys[1:]):
            if a != b:
                pairs[frozenset((a, b))] += 1

        logger.info(f"Counted {len(keys)} keystrokes, {len(frequencies)} distinct keys")
        return cls(dict(frequencies), dict(pairs))

    def to_dict(self) -> dict:
        entries = sorted(sorted(pair) + [weight] for pair, weight in self.cooccurrence.items())
        return {
            'frequencies': dict(self.frequencies),
            'cooccurrence': entries,
        }

    def keys_by_frequency(self) -> List[str]:
        """
        Return all keys, most frequent first. Ties are ordered by key name.
        """
        return sorted(self.frequencies, key=lambda k: (-self.frequencies[k], k))

    def weight(self, a: str, b: str) -> float:
        """
        Return the co-occurrence weight of two keys (0 if never seen together).
        """
        return self.cooccurrence.get(frozenset((a, b)), 0.0)

    def pairs_within(self, keys) -> List[Tuple[str, str, float]]:
        """
        Return the co-occurrence entries whose both keys are in `keys`.
        Each pair is listed once, ordered by the position of its keys in `keys`.
        """
        order = {k: i for i, k in enumerate(keys)}
        result = []

        for pair, weight in self.cooccurrence.items():
            a, b = sorted(pair, key=lambda k: order.get(k, -1))
            if a in order and b in order:
                result.append((a, b, weight))

        result.sort(key=lambda e: (order[e[0]], order[e[1]]))
        return result


def load_statistics(filename) -> KeyStatistics:
    """
    Load key statistics from a JSON file.

    Args:
        filename (str): Path to the statistics file

    Returns:
        KeyStatistics: Validated statistics

    Raises:
        StatisticsError: If the file cannot be parsed or is malformed
    """
    try:
        with open(filename, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StatisticsError(f"Cannot read statistics from {filename}: {e}") from e

    stats = KeyStatistics.from_dict(data)
    logger.info(f"Loaded statistics for {len(stats.frequencies)} keys from {filename}")
    return stats


def save_statistics(stats: KeyStatistics, filename) -> None:
    """
    Save key statistics to a JSON file.

    Args:
        stats (KeyStatistics): Statistics to write
        filename (str): Destination path
    """
    with open(filename, 'w') as f:
        json.dump(stats.to_dict(), f, indent=2)
    logger.info(f"Statistics saved to {filename}")
