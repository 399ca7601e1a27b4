"""
Devices Module - Hardware stick sources.

The gamepad is imported on demand (stickdial.devices.gamepad) so that offline
tools do not initialize pygame.
"""
