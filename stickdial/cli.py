"""
stickdial - command line entry point.

Sub-commands:
- build:  compute a keymap from key statistics and save it
- run:    type with a connected gamepad using a saved keymap
- replay: feed a recorded stick session through a keymap (dry run)
- show:   print the gestures of a saved keymap
"""

import argparse
import logging
import sys
import threading

from stickdial import config
from stickdial.config import GamepadConfig, LoggingConfig, OptimizerConfig
from stickdial.core.encoder import describe_gesture
from stickdial.core.loop import PollingLoop, ReplaySource, setup_signal_handler
from stickdial.dispatch.dispatcher import ActionDispatcher, LoggingKeyEmitter, PynputKeyEmitter, check_emittable
from stickdial.dispatch.mapping_table import MappingTableError, load_layers, modifier_state_name, save_layers
from stickdial.optimizer.mapping_builder import MappingBuilder, layer_modifiers
from stickdial.optimizer.stats import KeyStatistics, StatisticsError, load_statistics

logger = logging.getLogger(__name__)


def modifier_list(value):
    """Parse 'shift,ctrl' into ('shift', 'ctrl')."""
    return tuple(m.strip() for m in value.split(',') if m.strip())


def build_parser():
    parser = argparse.ArgumentParser(prog='stickdial', description='Gamepad text input by stick dialing')
    parser.add_argument('--log-level', type=str.upper, help='Logging level (DEBUG, INFO, WARNING, ...)')
    commands = parser.add_subparsers(dest='command', required=True)

    build = commands.add_parser('build', help='Build a keymap from key statistics')
    source = build.add_mutually_exclusive_group(required=True)
    source.add_argument('--stats', help='Path to key statistics JSON file')
    source.add_argument('--text', help='Path to a sample text to count key statistics from')
    build.add_argument('--out', help='Path to write the keymap JSON file', required=True)
    build.add_argument('--sector-count', type=int, help='Number of stick sectors')
    build.add_argument('--max-length', type=int, help='Dialing steps per stick')
    build.add_argument('--max-difficulty', type=int, help='Hardest gesture pair to assign')
    build.add_argument('--modifiers', type=modifier_list,
                       help=f"Comma separated modifier layers (default: {','.join(OptimizerConfig.MODIFIERS)})")

    run = commands.add_parser('run', help='Type with a gamepad')
    run.add_argument('--table', help='Path to keymap JSON file', required=True)
    run.add_argument('--joystick', type=int, help='Joystick index')
    run.add_argument('--rate', type=float, help='Sample rate in Hz')
    run.add_argument('--threshold', type=float, help='Center zone radius (0-1)')
    run.add_argument('--release-threshold', type=float, help='Radius to return to center (hysteresis)')
    run.add_argument('--dry-run', action='store_true', help='Log key events instead of sending them')

    replay = commands.add_parser('replay', help='Replay a recorded stick session (dry run)')
    replay.add_argument('--table', help='Path to keymap JSON file', required=True)
    replay.add_argument('--samples', help='Path to CSV recording (lx, ly, rx, ry[, modifiers])', required=True)
    replay.add_argument('--threshold', type=float, help='Center zone radius (0-1)')
    replay.add_argument('--release-threshold', type=float, help='Radius to return to center (hysteresis)')

    show = commands.add_parser('show', help='Print a keymap')
    show.add_argument('--table', help='Path to keymap JSON file', required=True)
    show.add_argument('--layer', default='', help="Modifier layer to print, e.g. 'shift' (default: base)")

    return parser


def command_build(args):
    if args.stats:
        stats = load_statistics(args.stats)
    else:
        with open(args.text, 'r', encoding='utf-8') as f:
            stats = KeyStatistics.from_text(f.read())

    result = MappingBuilder().build(stats)
    layers = layer_modifiers(result.table, OptimizerConfig.MODIFIERS)
    save_layers(layers, args.out)

    return 0


def _make_loop(layers, source, emitter, args):
    dispatcher = ActionDispatcher(layers, emitter)

    # The keymap defines how gestures are encoded
    loop = PollingLoop(
        source,
        dispatcher,
        threshold=args.threshold,
        release_threshold=args.release_threshold,
        sector_count=layers.sector_count,
        max_length=layers.max_length,
    )
    return loop, dispatcher


def command_run(args):
    from stickdial.devices.gamepad import PygameGamepad

    layers = load_layers(args.table)
    emitter = LoggingKeyEmitter() if args.dry_run else PynputKeyEmitter()
    # Reject untypable keys before the gamepad is opened
    check_emittable(layers, emitter)
    loop, _ = _make_loop(layers, PygameGamepad(GamepadConfig.JOYSTICK_INDEX), emitter, args)

    stop_event = threading.Event()
    setup_signal_handler(stop_event)

    logger.info(f"Modifiers: {', '.join(f'{n}=button {b}' for n, b in GamepadConfig.MODIFIER_BUTTONS.items())}")
    logger.info("Press Ctrl+C to stop.")
    loop.run(stop_event)

    return 0


def command_replay(args):
    layers = load_layers(args.table)
    emitter = LoggingKeyEmitter()
    loop, dispatcher = _make_loop(layers, ReplaySource.from_csv(args.samples), emitter, args)

    loop.run(threading.Event(), realtime=False)

    print(' '.join('+'.join(keys) for keys in emitter.events))
    print(f"inputs: {loop.inputs}, dispatched: {dispatcher.dispatched}, misses: {dispatcher.misses}")

    return 0


def command_show(args):
    layers = load_layers(args.table)
    table = layers.table_for(m for m in args.layer.split('+') if m)
    if table is None:
        available = ', '.join(repr(modifier_state_name(s)) for s in layers)
        logger.error(f"No layer {args.layer!r} (available: {available})")
        return 1

    for (left, right), action in sorted(table.items(), key=lambda item: (len(item[0][0]) + len(item[0][1]), item[0])):
        print(f"{describe_gesture(left, table.sector_count):>4} {describe_gesture(right, table.sector_count):>4}  {action}")

    return 0


COMMANDS = {
    'build': command_build,
    'run': command_run,
    'replay': command_replay,
    'show': command_show,
}


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config.apply_args(args)
    except ValueError as e:
        logging.basicConfig(format=LoggingConfig.FORMAT)
        logger.error(f"Invalid configuration: {e}")
        return 1

    logging.basicConfig(level=LoggingConfig.LEVEL, format=LoggingConfig.FORMAT)

    try:
        return COMMANDS[args.command](args)
    except (MappingTableError, StatisticsError, OSError, ValueError, RuntimeError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received, shutting down...")
        return 0


if __name__ == '__main__':
    sys.exit(main())
