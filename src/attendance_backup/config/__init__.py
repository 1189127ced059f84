"""Configuration helpers for the attendance backup subsystem.

The backup settings themselves live in ``attendance_backup.backup.config``;
this package holds the environment loading they are built on.
"""

from attendance_backup.config.env_loader import EnvLoader

__all__ = ["EnvLoader"]
