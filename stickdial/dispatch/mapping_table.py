"""
Action mapping tables for stickdial.

An `ActionMappingTable` maps a gesture pair (left, right) to an action such as
'e' or 'shift+e'. Tables are built offline, saved as JSON, loaded once when the
runtime starts and never modified afterwards, so they can be shared freely.

One table exists per modifier state (the shoulder buttons held while the input
completes); `KeymapLayers` groups them.

FILE FORMAT:
    {
        "version": 1,
        "sector_count": 4,
        "max_length": 2,
        "modifiers": ["shift"],
        "layers": {
            "": [{"left": [0], "right": [], "action": "e"}, ...],
            "shift": [{"left": [0], "right": [], "action": "shift+e"}, ...]
        }
    }
"""

import collections.abc
import json
import logging
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple

from stickdial.core.encoder import Gesture, is_valid_gesture

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
ACTION_SEPARATOR = '+'

GestureKey = Tuple[Gesture, Gesture]
ModifierState = FrozenSet[str]


class MappingTableError(ValueError):
    """Raised when an action mapping table is malformed."""


def split_action(action: str) -> List[str]:
    """
    Split a key combination into the names of its keys: 'ctrl+shift+a' -> ['ctrl', 'shift', 'a'].
    The plus key itself is named 'plus'.
    """
    return action.split(ACTION_SEPARATOR)


def modifier_state_name(modifiers: Iterable[str]) -> str:
    """
    Return the canonical name of a modifier state ('' for no modifier).
    """
    return ACTION_SEPARATOR.join(sorted(modifiers))


def parse_modifier_state(name: str) -> ModifierState:
    if not name:
        return frozenset()
    return frozenset(name.split(ACTION_SEPARATOR))


class ActionMappingTable(collections.abc.Mapping):
    """
    Read-only mapping from gesture pairs to actions.

    The table checks on construction that every gesture could be produced by the
    recognizer and that no action is reachable by two gestures.
    """

    def __init__(self, entries: Mapping[GestureKey, str], sector_count: int, max_length: int) -> None:
        """
        Initialize the table.

        Args:
            entries (Mapping): (left gesture, right gesture) -> action
            sector_count (int): Sector count the gestures were encoded with
            max_length (int): Gesture length cap the gestures were encoded with

        Raises:
            MappingTableError: If an entry is invalid or an action is duplicated
        """
        self.sector_count = sector_count
        self.max_length = max_length

        table: Dict[GestureKey, str] = {}
        seen: Dict[str, GestureKey] = {}

        for key, action in entries.items():
            if not isinstance(key, tuple) or len(key) != 2:
                raise MappingTableError(f"Table keys must be (left, right) gesture pairs, got {key!r}")

            left, right = tuple(key[0]), tuple(key[1])
            for gesture in (left, right):
                if not is_valid_gesture(gesture, sector_count, max_length):
                    raise MappingTableError(f"Invalid gesture {gesture!r} for action {action!r}")
            if not left and not right:
                raise MappingTableError(f"Action {action!r} is mapped to the neutral input")
            if not isinstance(action, str) or not action:
                raise MappingTableError(f"Action for {(left, right)} must be a non-empty string")
            if not all(split_action(action)):
                raise MappingTableError(f"Action {action!r} has an empty key name")
            if action in seen:
                raise MappingTableError(
                    f"Action {action!r} is mapped to both {seen[action]} and {(left, right)}"
                )

            seen[action] = (left, right)
            table[(left, right)] = action

        self._table = MappingProxyType(table)

    def __getitem__(self, key: GestureKey) -> str:
        return self._table[key]

    def __iter__(self) -> Iterator[GestureKey]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def actions(self) -> List[str]:
        return list(self._table.values())

    def __repr__(self) -> str:
        return f"ActionMappingTable({len(self)} entries, sectors={self.sector_count}, max_length={self.max_length})"


class KeymapLayers(collections.abc.Mapping):
    """
    One action mapping table per modifier state.
    The layer for the empty modifier state is the base keymap.
    """

    def __init__(self, layers: Mapping[ModifierState, ActionMappingTable], modifiers: Iterable[str] = ()) -> None:
        self.modifiers = tuple(modifiers)
        " Modifier names in the order their keys are pressed. "

        self._layers = MappingProxyType({frozenset(state): table for state, table in layers.items()})

        if frozenset() not in self._layers:
            raise MappingTableError("Keymap has no base layer")

        base = self._layers[frozenset()]
        for state, table in self._layers.items():
            if (table.sector_count, table.max_length) != (base.sector_count, base.max_length):
                raise MappingTableError(f"Layer {modifier_state_name(state)!r} uses a different gesture encoding")

    def __getitem__(self, state: ModifierState) -> ActionMappingTable:
        return self._layers[frozenset(state)]

    def __iter__(self) -> Iterator[ModifierState]:
        return iter(self._layers)

    def __len__(self) -> int:
        return len(self._layers)

    @property
    def base(self) -> ActionMappingTable:
        return self._layers[frozenset()]

    @property
    def sector_count(self) -> int:
        return self.base.sector_count

    @property
    def max_length(self) -> int:
        return self.base.max_length

    def table_for(self, modifiers: Iterable[str]) -> Optional[ActionMappingTable]:
        """
        Return the table of a modifier state, or None if the state has no layer.
        """
        return self._layers.get(frozenset(modifiers))


def layers_to_dict(layers: KeymapLayers) -> dict:
    return {
        'version': FORMAT_VERSION,
        'sector_count': layers.sector_count,
        'max_length': layers.max_length,
        'modifiers': list(layers.modifiers),
        'layers': {
            modifier_state_name(state): [
                {'left': list(left), 'right': list(right), 'action': action}
                for (left, right), action in table.items()
            ]
            for state, table in sorted(layers.items(), key=lambda item: (len(item[0]), sorted(item[0])))
        },
    }


def _parse_gesture(value, where) -> Gesture:
    if not isinstance(value, list) or not all(isinstance(s, int) and not isinstance(s, bool) for s in value):
        raise MappingTableError(f"{where}: gesture must be a list of sector indices, got {value!r}")
    return tuple(value)


def layers_from_dict(data) -> KeymapLayers:
    """
    Build keymap layers from their JSON document.

    Raises:
        MappingTableError: If any part of the document is malformed
    """
    if not isinstance(data, dict):
        raise MappingTableError("Keymap document must be a JSON object")
    if data.get('version') != FORMAT_VERSION:
        raise MappingTableError(f"Unsupported keymap version {data.get('version')!r}")

    sector_count = data.get('sector_count')
    max_length = data.get('max_length')
    for name, value in (('sector_count', sector_count), ('max_length', max_length)):
        if not isinstance(value, int) or isinstance(value, bool) or value < 1:
            raise MappingTableError(f"'{name}' must be a positive integer, got {value!r}")

    modifiers = data.get('modifiers', [])
    if not isinstance(modifiers, list) or not all(isinstance(m, str) and m for m in modifiers):
        raise MappingTableError("'modifiers' must be a list of names")

    raw_layers = data.get('layers')
    if not isinstance(raw_layers, dict):
        raise MappingTableError("'layers' must be an object")

    layers = {}
    for name, entries in raw_layers.items():
        if not isinstance(entries, list):
            raise MappingTableError(f"Layer {name!r} must be a list of entries")

        table = {}
        for i, entry in enumerate(entries):
            where = f"layer {name!r} entry {i}"
            if not isinstance(entry, dict) or set(entry) != {'left', 'right', 'action'}:
                raise MappingTableError(f"{where}: expected keys left/right/action")
            key = (_parse_gesture(entry['left'], where), _parse_gesture(entry['right'], where))
            if key in table:
                raise MappingTableError(f"{where}: gesture pair {key} listed twice")
            table[key] = entry['action']

        layers[parse_modifier_state(name)] = ActionMappingTable(table, sector_count, max_length)

    return KeymapLayers(layers, modifiers)


def save_layers(layers: KeymapLayers, filename) -> None:
    """
    Save keymap layers to a JSON file.

    Args:
        layers (KeymapLayers): Keymap to save
        filename (str): Destination path
    """
    with open(filename, 'w') as f:
        json.dump(layers_to_dict(layers), f, indent=2)
    logger.info(f"Keymap saved to {filename} ({len(layers.base)} base entries, {len(layers)} layers)")


def load_layers(filename) -> KeymapLayers:
    """
    Load keymap layers from a JSON file.
    Either the whole file is valid and loaded, or `MappingTableError` is raised.

    Args:
        filename (str): Path to the keymap file

    Returns:
        KeymapLayers: Loaded keymap

    Raises:
        MappingTableError: If the file cannot be read or is malformed
    """
    try:
        with open(filename, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise MappingTableError(f"Cannot read keymap from {filename}: {e}") from e

    layers = layers_from_dict(data)
    logger.info(f"Loaded keymap from {filename} ({len(layers.base)} base entries, {len(layers)} layers)")
    return layers
