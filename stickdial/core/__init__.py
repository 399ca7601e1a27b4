"""
Core Module - Online recognition path.

This module contains the per-tick pipeline that turns raw stick samples into inputs:
- Axis classification into center/sectors (sectors.py)
- Gesture encoding and difficulty (encoder.py)
- Per-stick gesture state machine and two-stick aggregation (recognizer.py)
- Fixed-rate polling loop and recorded sample replay (loop.py)
"""

from .sectors import StickState, classify_axis, clamp_sample, sector_of_angle
from .encoder import Gesture, encode_gesture, is_valid_gesture, difficulty, describe_gesture
from .recognizer import RecognizerState, CompletedInput, GestureRecognizer, InputAggregator
from .loop import StickFrame, StickSource, ReplaySource, PollingLoop, setup_signal_handler

__all__ = [
    # Axis classification
    'StickState',
    'classify_axis',
    'clamp_sample',
    'sector_of_angle',
    # Encoding
    'Gesture',
    'encode_gesture',
    'is_valid_gesture',
    'difficulty',
    'describe_gesture',
    # Recognition
    'RecognizerState',
    'CompletedInput',
    'GestureRecognizer',
    'InputAggregator',
    # Loop
    'StickFrame',
    'StickSource',
    'ReplaySource',
    'PollingLoop',
    'setup_signal_handler',
]
