"""
Gamepad stick source backed by pygame.

pygame (SDL) does the HID polling; this module only reads the two sticks and
the modifier buttons once per tick and hands them to the polling loop.
"""

import logging
import os

os.environ.setdefault('PYGAME_HIDE_SUPPORT_PROMPT', '1')
import pygame

from stickdial.config import GamepadConfig
from stickdial.core.loop import StickFrame, StickSource

logger = logging.getLogger(__name__)


class PygameGamepad(StickSource):
    """
    Reads both analog sticks and the modifier buttons of a gamepad.
    """

    def __init__(self, joystick_index=None, joystick=None):
        """
        Initialize the gamepad.

        Args:
            joystick_index (int, optional): Joystick to open. If None, uses config default.
            joystick (optional): Already opened joystick object (anything with get_axis/get_button)

        Raises:
            RuntimeError: If the requested joystick is not connected
        """
        self.left_axes = GamepadConfig.LEFT_AXES
        self.right_axes = GamepadConfig.RIGHT_AXES
        self.invert_y = GamepadConfig.INVERT_Y
        self.modifier_buttons = dict(GamepadConfig.MODIFIER_BUTTONS)
        self._owns_pygame = joystick is None

        if joystick is None:
            index = joystick_index if joystick_index is not None else GamepadConfig.JOYSTICK_INDEX

            pygame.init()
            pygame.joystick.init()
            count = pygame.joystick.get_count()
            if index >= count:
                pygame.quit()
                raise RuntimeError(f"Joystick {index} not found ({count} connected)")

            joystick = pygame.joystick.Joystick(index)
            joystick.init()
            logger.info(f"Opened joystick {index}: {joystick.get_name()} "
                        f"({joystick.get_numaxes()} axes, {joystick.get_numbuttons()} buttons)")

        self.joystick = joystick

    def _read_stick(self, axes):
        x = self.joystick.get_axis(axes[0])
        y = self.joystick.get_axis(axes[1])
        return x, -y if self.invert_y else y

    def poll(self):
        if self._owns_pygame:
            pygame.event.pump()

        modifiers = frozenset(
            name for name, button in self.modifier_buttons.items()
            if self.joystick.get_button(button)
        )

        return StickFrame(
            self._read_stick(self.left_axes),
            self._read_stick(self.right_axes),
            modifiers,
        )

    def close(self):
        if self._owns_pygame:
            pygame.quit()
            logger.info("Gamepad closed")
