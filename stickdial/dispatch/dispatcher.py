"""
Action dispatch for stickdial.

The dispatcher resolves each completed input through the keymap layer of the
modifiers held at that moment and sends the resulting key combination to the host.
Inputs without an entry are ignored and only counted.
"""

import logging
import time
from typing import Iterable, List, Optional, Sequence

from stickdial.config import DispatchConfig
from stickdial.core.encoder import describe_gesture
from stickdial.core.recognizer import CompletedInput
from stickdial.dispatch.mapping_table import KeymapLayers, MappingTableError, modifier_state_name, split_action

logger = logging.getLogger(__name__)


class KeyEmitter:
    """
    Interface of the host key injection. `emit` presses the keys in order and releases them in reverse.
    """

    def emit(self, keys: Sequence[str]) -> None:
        raise NotImplementedError

    def can_emit(self, name: str) -> bool:
        """
        Whether the key called `name` can be sent to the host.
        """
        return True


class PynputKeyEmitter(KeyEmitter):
    """
    Sends key events to the host through pynput.

    Multi-character names are the members of `pynput.keyboard.Key` ('enter', 'f1',
    'page_up', ...); single characters are typed as themselves.
    """

    # Key names standing for a character
    CHARACTER_NAMES = {
        'plus': '+',
    }

    def __init__(self, press_delay=None, controller=None):
        """
        Initialize the emitter.

        Args:
            press_delay (float, optional): Seconds between press and release. If None, uses config default.
            controller (optional): Object with press/release methods. If None, a pynput keyboard controller.
        """
        # pynput connects to the display server on import
        from pynput import keyboard

        self._key = keyboard.Key
        self._key_code = keyboard.KeyCode
        self.controller = controller if controller is not None else keyboard.Controller()
        self.press_delay = press_delay if press_delay is not None else DispatchConfig.KEY_PRESS_DELAY

    def can_emit(self, name):
        name = self.CHARACTER_NAMES.get(name, name)
        return len(name) == 1 or name in self._key.__members__

    def _resolve(self, name):
        name = self.CHARACTER_NAMES.get(name, name)
        if len(name) == 1:
            return self._key_code.from_char(name)
        if name in self._key.__members__:
            return self._key[name]
        raise ValueError(f"Unknown key name {name!r}")

    def emit(self, keys):
        resolved = [self._resolve(k) for k in keys]

        for key in resolved:
            self.controller.press(key)
        if self.press_delay > 0:
            time.sleep(self.press_delay)
        for key in reversed(resolved):
            self.controller.release(key)


class LoggingKeyEmitter(KeyEmitter):
    """
    Dry-run emitter: logs and records the key combinations instead of sending them.
    """

    def __init__(self):
        self.events: List[List[str]] = []

    def emit(self, keys):
        self.events.append(list(keys))
        logger.info(f"Key event: {'+'.join(keys)}")


class ActionDispatcher:
    """
    Resolves completed inputs through the keymap and emits the mapped keys.

    The keymap is only read, never modified, so one `KeymapLayers` instance can be
    shared by any number of dispatchers.
    """

    def __init__(self, layers: KeymapLayers, emitter: KeyEmitter):
        """
        Initialize the dispatcher.

        Args:
            layers (KeymapLayers): Keymap, one table per modifier state
            emitter (KeyEmitter): Host key injection
        """
        self.layers = layers
        self.emitter = emitter
        check_emittable(layers, emitter)

        self.dispatched = 0
        self.misses = 0

    def dispatch(self, completed: CompletedInput, modifiers: Iterable[str] = frozenset()) -> Optional[str]:
        """
        Emit the action mapped to a completed input.

        Args:
            completed (CompletedInput): Gestures of both sticks
            modifiers (Iterable[str]): Modifier buttons held when the input completed

        Returns:
            str: The emitted action, or None if the input has no mapping
        """
        modifiers = frozenset(modifiers)
        table = self.layers.table_for(modifiers)
        action = table.get(completed.key) if table is not None else None

        if action is None:
            self.misses += 1
            logger.debug(
                f"No action for {describe_gesture(completed.left, self.layers.sector_count)} "
                f"{describe_gesture(completed.right, self.layers.sector_count)} "
                f"(modifiers: {sorted(modifiers) or 'none'})"
            )
            return None

        self.emitter.emit(split_action(action))
        self.dispatched += 1
        return action

    @property
    def stats(self):
        """
        Counters of dispatched actions and lookup misses.

        Returns:
            dict: {'dispatched': int, 'misses': int}
        """
        return {
            'dispatched': self.dispatched,
            'misses': self.misses,
        }


def check_emittable(layers: KeymapLayers, emitter: KeyEmitter) -> None:
    """
    Make sure every key named by the keymap can be sent by `emitter`.

    Raises:
        MappingTableError: If a layer names a key the emitter does not know
    """
    for state, table in layers.items():
        unknown = sorted({key for action in table.values() for key in split_action(action)
                          if not emitter.can_emit(key)})
        if unknown:
            raise MappingTableError(
                f"Layer {modifier_state_name(state)!r} names keys that cannot be typed: {', '.join(unknown)}"
            )
