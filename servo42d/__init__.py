"""MKS SERVO42D drivers over RS485: frames, bus commands and three-wheel omni base kinematics."""

__version__ = "1.2.0"
__all__ = ["protocol", "driver", "base", "cli"]