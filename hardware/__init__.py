"""Hardware controller package."""

from hardware.camera_controller import CameraController

__all__ = ["CameraController"]
