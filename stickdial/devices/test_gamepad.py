import pytest

pytest.importorskip("pygame")

from stickdial.devices.gamepad import PygameGamepad  # noqa: E402


class FakeJoystick:
    def __init__(self, axes, buttons=()):
        self.axes = axes
        self.buttons = set(buttons)

    def get_axis(self, i):
        return self.axes[i]

    def get_button(self, i):
        return i in self.buttons


def test_sticks_are_read_with_y_up():
    gamepad = PygameGamepad(joystick=FakeJoystick([0.5, -1.0, -0.25, 0.75]))

    frame = gamepad.poll()

    assert frame.left == (0.5, 1.0)
    assert frame.right == (-0.25, -0.75)
    assert frame.modifiers == frozenset()


def test_modifier_buttons():
    gamepad = PygameGamepad(joystick=FakeJoystick([0.0] * 4, buttons=[4, 5]))

    assert gamepad.poll().modifiers == frozenset({'shift', 'ctrl'})


def test_borrowed_joystick_is_not_closed():
    gamepad = PygameGamepad(joystick=FakeJoystick([0.0] * 4))
    gamepad.close()
    assert gamepad.poll() is not None
