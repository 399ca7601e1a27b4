"""
Configuration module for stickdial.

This module contains all configuration parameters and constants used throughout the application.
Components read their defaults from here when a parameter is not passed explicitly, so
command line overrides are applied by `apply_args` before anything is created.

TUNING:
- If gestures trigger while resting a thumb on the stick: raise CENTER_THRESHOLD
- If fast two-step dials are missed: raise SAMPLE_RATE_HZ (100-125 Hz is usually enough)
- If a stick flickers at the rim of the center zone: set RELEASE_THRESHOLD a bit lower
"""


# ==================== Stick Configuration ====================
class StickConfig:
    """Axis classification and gesture recognition parameters."""

    # Radius (normalized, 0-1) below which a stick counts as centered
    CENTER_THRESHOLD = 0.5

    # Radius below which an active stick returns to center.
    # None = same as CENTER_THRESHOLD (no hysteresis)
    RELEASE_THRESHOLD = None

    # Number of angular sectors. Sector 0 is centered on +x (right),
    # numbering runs counter-clockwise: 0=right, 1=up, 2=left, 3=down
    SECTOR_COUNT = 4

    # Maximum dialing steps per stick (1 = push, 2 = push and rotate)
    MAX_GESTURE_LENGTH = 2


# ==================== Polling Loop Configuration ====================
class LoopConfig:
    """Fixed-rate polling loop parameters."""

    # Samples per second for both sticks
    SAMPLE_RATE_HZ = 100

    # Log a warning once this many ticks overran their deadline
    LATE_TICK_WARN_EVERY = 100


# ==================== Gamepad Configuration ====================
class GamepadConfig:
    """Gamepad axis and button layout (pygame/SDL indices)."""

    # Which joystick to open
    JOYSTICK_INDEX = 0

    # Axis indices (x, y) for each stick.
    # SDL2 game controllers usually report the right stick on axes 2/3 (3/4 on some drivers)
    LEFT_AXES = (0, 1)
    RIGHT_AXES = (2, 3)

    # SDL reports +y when the stick is pushed down
    INVERT_Y = True

    # Shoulder buttons held as modifiers (name -> button index)
    MODIFIER_BUTTONS = {
        'shift': 4,
        'ctrl': 5,
    }


# ==================== Optimizer Configuration ====================
class OptimizerConfig:
    """Offline keymap construction parameters."""

    # Highest combined-gesture difficulty to assign.
    # None = 2 * MAX_GESTURE_LENGTH (every gesture both sticks can make)
    MAX_DIFFICULTY = None

    # Modifier layers written next to the base keymap (order = emitted order)
    MODIFIERS = ('shift',)


# ==================== Dispatch Configuration ====================
class DispatchConfig:
    """Key event emission parameters."""

    # Delay between press and release of a key event (seconds)
    KEY_PRESS_DELAY = 0.01


# ==================== Logging Configuration ====================
class LoggingConfig:
    """Logging output format."""

    LEVEL = 'INFO'
    FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def apply_args(args):
    """
    Copy command line overrides onto the configuration classes.

    Only attributes present on the namespace and not None are applied, so every
    sub-command can share this function. Invalid overrides are rolled back.

    Args:
        args (argparse.Namespace): Parsed command line arguments

    Raises:
        ValueError: If the resulting configuration is invalid
    """
    overrides = {
        'threshold': (StickConfig, 'CENTER_THRESHOLD'),
        'release_threshold': (StickConfig, 'RELEASE_THRESHOLD'),
        'sector_count': (StickConfig, 'SECTOR_COUNT'),
        'max_length': (StickConfig, 'MAX_GESTURE_LENGTH'),
        'rate': (LoopConfig, 'SAMPLE_RATE_HZ'),
        'joystick': (GamepadConfig, 'JOYSTICK_INDEX'),
        'max_difficulty': (OptimizerConfig, 'MAX_DIFFICULTY'),
        'modifiers': (OptimizerConfig, 'MODIFIERS'),
        'log_level': (LoggingConfig, 'LEVEL'),
    }

    previous = []
    for attr, (config_cls, name) in overrides.items():
        value = getattr(args, attr, None)
        if value is not None:
            previous.append((config_cls, name, getattr(config_cls, name)))
            setattr(config_cls, name, value)

    try:
        validate()
    except ValueError:
        for config_cls, name, value in reversed(previous):
            setattr(config_cls, name, value)
        raise


def validate():
    """
    Check the configuration classes for impossible values.

    Raises:
        ValueError: If a parameter is out of range
    """
    check_stick_parameters(
        StickConfig.CENTER_THRESHOLD,
        StickConfig.RELEASE_THRESHOLD,
        StickConfig.SECTOR_COUNT,
        StickConfig.MAX_GESTURE_LENGTH,
    )

    if LoopConfig.SAMPLE_RATE_HZ <= 0:
        raise ValueError(f"Sample rate must be positive, got {LoopConfig.SAMPLE_RATE_HZ}")

    max_difficulty = OptimizerConfig.MAX_DIFFICULTY
    if max_difficulty is not None and max_difficulty < 1:
        raise ValueError(f"Maximum difficulty must be at least 1, got {max_difficulty}")


def check_stick_parameters(threshold, release_threshold, sector_count, max_length):
    """
    Validate the recognition parameters shared by the classifier and the recognizer.

    Raises:
        ValueError: If a parameter is out of range
    """
    if not 0 < threshold <= 1:
        raise ValueError(f"Center threshold must be in (0, 1], got {threshold}")
    if release_threshold is not None and not 0 < release_threshold <= threshold:
        raise ValueError(
            f"Release threshold must be in (0, {threshold}], got {release_threshold}"
        )
    if sector_count < 2:
        raise ValueError(f"Sector count must be at least 2, got {sector_count}")
    if max_length < 1:
        raise ValueError(f"Maximum gesture length must be at least 1, got {max_length}")
