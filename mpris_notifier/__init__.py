"""XDG desktop notifications for MPRIS media player track changes."""

__version__ = "0.1.7"
