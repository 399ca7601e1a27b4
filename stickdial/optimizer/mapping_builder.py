"""
Keymap construction for stickdial.

The builder hands out keys to gestures so that frequent keys get cheap gestures
and keys often typed in succession land on different sticks:

1. Keys are sorted by frequency, most frequent first
2. For each single stick difficulty tier (1 step, 2 steps, ...) the next keys are
   withdrawn, split between the sticks by the bipartite partitioner, and assigned
   to that tier's left and right gestures in order
3. Keys left over after the single stick tiers go to gestures moving both sticks,
   easiest first; these need no partitioning
4. Modifier layers repeat the base keymap with the modifier keys prepended
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from stickdial.config import OptimizerConfig, StickConfig
from stickdial.dispatch.mapping_table import ACTION_SEPARATOR, ActionMappingTable, GestureKey, KeymapLayers
from stickdial.optimizer.difficulty import DifficultyTier, combined_gestures, single_stick_tiers, withdraw_keys
from stickdial.optimizer.partition import Partition, partition_keys
from stickdial.optimizer.stats import KeyStatistics

logger = logging.getLogger(__name__)


@dataclass
class TierAssignment:
    """Outcome of one single stick tier."""

    difficulty: int
    partition: Partition
    moved_keys: List[str] = field(default_factory=list)
    "Keys moved to the other stick because their side had no gesture left."


@dataclass
class BuildResult:
    """Result of a keymap build."""

    table: ActionMappingTable
    tiers: List[TierAssignment] = field(default_factory=list)
    unassigned: List[str] = field(default_factory=list)
    "Keys that did not fit below the difficulty cap."


class MappingBuilder:
    """
    Builds the base action mapping table from key statistics.
    """

    def __init__(self, sector_count: Optional[int] = None, max_length: Optional[int] = None,
                 max_difficulty: Optional[int] = None):
        """
        Initialize the builder.

        Args:
            sector_count (int, optional): Number of stick sectors. If None, uses config default.
            max_length (int, optional): Dialing steps per stick. If None, uses config default.
            max_difficulty (int, optional): Hardest gesture pair to use. If None, uses config
                default, which in turn defaults to every gesture both sticks can make.
        """
        self.sector_count = sector_count if sector_count is not None else StickConfig.SECTOR_COUNT
        self.max_length = max_length if max_length is not None else StickConfig.MAX_GESTURE_LENGTH

        if max_difficulty is None:
            max_difficulty = OptimizerConfig.MAX_DIFFICULTY
        self.max_difficulty = max_difficulty if max_difficulty is not None else 2 * self.max_length

    def build(self, stats: KeyStatistics) -> BuildResult:
        """
        Assign every key of `stats` to a gesture pair.

        Args:
            stats (KeyStatistics): Key frequencies and co-occurrences

        Returns:
            BuildResult: The table, the per tier partitions and the keys left without a gesture
        """
        remaining = stats.keys_by_frequency()
        entries: Dict[GestureKey, str] = {}
        tiers: List[TierAssignment] = []

        logger.info(
            f"Building keymap for {len(remaining)} keys "
            f"({self.sector_count} sectors, {self.max_length} steps, difficulty <= {self.max_difficulty})"
        )

        for tier in single_stick_tiers(self.sector_count, self.max_length):
            if not remaining or tier.difficulty > self.max_difficulty:
                break

            keys, remaining = withdraw_keys(remaining, tier.size)
            partition = partition_keys(keys, stats)
            left, right, moved = self._fit_to_tier(partition, tier, stats)

            for gesture, key in zip(tier.left, left):
                entries[gesture] = key
            for gesture, key in zip(tier.right, right):
                entries[gesture] = key

            tiers.append(TierAssignment(tier.difficulty, partition, moved))
            logger.info(
                f"Tier {tier.difficulty}: {len(left)} left / {len(right)} right keys, "
                f"{len(partition.removed_edges)} edges removed, lost weight {partition.lost_weight:g}"
            )
            if partition.lost_edges:
                lost = ', '.join(f"{a}{b}" for a, b, _ in partition.lost_edges)
                logger.info(f"Tier {tier.difficulty}: same-stick pairs {lost}")

        pairs = combined_gestures(self.sector_count, self.max_length, self.max_difficulty)
        for gesture, key in zip(pairs, remaining):
            entries[gesture] = key

        unassigned = remaining[len(pairs):]
        if unassigned:
            logger.warning(f"{len(unassigned)} keys have no gesture below difficulty {self.max_difficulty}: "
                           f"{' '.join(unassigned)}")

        table = ActionMappingTable(entries, self.sector_count, self.max_length)
        logger.info(f"Keymap built with {len(table)} entries")

        return BuildResult(table, tiers, unassigned)

    @staticmethod
    def _fit_to_tier(partition: Partition, tier: DifficultyTier, stats: KeyStatistics):
        """
        Order both sides by frequency and make them fit the tier's gestures.

        A side holding more keys than its stick has gestures in this tier gives its
        least frequent surplus keys to the other side. Their co-occurrence edges are lost.
        """
        def by_frequency(keys):
            return sorted(keys, key=lambda k: (-stats.frequencies[k], k))

        left = by_frequency(partition.left)
        right = by_frequency(partition.right)
        moved: List[str] = []

        while len(left) > len(tier.left):
            key = left.pop()
            moved.append(key)
            right.append(key)
        while len(right) > len(tier.right):
            key = right.pop()
            moved.append(key)
            left.append(key)

        if moved:
            logger.info(f"Tier {tier.difficulty}: moved {' '.join(moved)} to balance the sticks")

        return by_frequency(left), by_frequency(right), moved


def layer_modifiers(table: ActionMappingTable, modifiers: Sequence[str] = ()) -> KeymapLayers:
    """
    Repeat the base table once for every combination of modifiers.

    The action of a modified layer presses the modifiers first, in the order given,
    e.g. 'ctrl+shift+e' for the layer {ctrl, shift}.

    Args:
        table (ActionMappingTable): Base keymap
        modifiers (Sequence[str]): Modifier key names

    Returns:
        KeymapLayers: Base table plus one table per non-empty modifier combination
    """
    modifiers = tuple(dict.fromkeys(modifiers))
    layers = {frozenset(): table}

    for count in range(1, len(modifiers) + 1):
        for combo in itertools.combinations(modifiers, count):
            prefix = ACTION_SEPARATOR.join(combo) + ACTION_SEPARATOR
            entries = {key: prefix + action for key, action in table.items()}
            layers[frozenset(combo)] = ActionMappingTable(entries, table.sector_count, table.max_length)

    return KeymapLayers(layers, modifiers)
