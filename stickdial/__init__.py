"""
stickdial - Gamepad Text Input by Stick Dialing

Types text with the two analog sticks of a gamepad. Each stick is pushed out of
its center zone and "dialed" through one or two directional sectors; the pair
of gestures made by both sticks is looked up in a keymap and sent to the host
as a key press.

Main components:
- config: Centralized configuration (defaults + command line overrides)
- core: Axis classification, gesture recognition/encoding, polling loop
- optimizer: Offline keymap construction from key usage statistics
- dispatch: Keymap tables, persistence and key event dispatch
- devices: Gamepad stick source (pygame)
"""

__version__ = "1.0.0"
