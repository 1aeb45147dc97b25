"""Client-side state layer for the team task manager."""

__version__ = "1.0.0"
