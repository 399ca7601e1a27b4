"""
Dispatch Module - Keymap tables and key events.

This module provides:
- Immutable action mapping tables, modifier layers and their JSON files (mapping_table.py)
- Action dispatcher and host key emitters (dispatcher.py)
"""

from .mapping_table import (
    ActionMappingTable,
    KeymapLayers,
    MappingTableError,
    split_action,
    load_layers,
    save_layers
)

from .dispatcher import ActionDispatcher, KeyEmitter, PynputKeyEmitter, LoggingKeyEmitter, check_emittable

__all__ = [
    'ActionMappingTable',
    'KeymapLayers',
    'MappingTableError',
    'split_action',
    'load_layers',
    'save_layers',
    'ActionDispatcher',
    'KeyEmitter',
    'PynputKeyEmitter',
    'LoggingKeyEmitter',
    'check_emittable',
]
