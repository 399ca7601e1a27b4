"""
Optimizer Module - Offline keymap construction.

This module provides:
- Key frequency and co-occurrence statistics (stats.py)
- Gesture enumeration by difficulty (difficulty.py)
- Bipartite split of keys between the sticks (partition.py)
- Keymap assembly and modifier layers (mapping_builder.py)
"""

from .stats import KeyStatistics, StatisticsError, load_statistics, save_statistics
from .difficulty import DifficultyTier, enumerate_gestures, single_stick_tiers, combined_gestures
from .partition import CooccurrenceGraph, Partition, BipartitePartitioner, partition_keys
from .mapping_builder import MappingBuilder, BuildResult, layer_modifiers

__all__ = [
    'KeyStatistics',
    'StatisticsError',
    'load_statistics',
    'save_statistics',
    'DifficultyTier',
    'enumerate_gestures',
    'single_stick_tiers',
    'combined_gestures',
    'CooccurrenceGraph',
    'Partition',
    'BipartitePartitioner',
    'partition_keys',
    'MappingBuilder',
    'BuildResult',
    'layer_modifiers',
]
