"""Database image, scope formatting, community layouts and alog playback for MOOS."""

__version__ = "0.1.0"

__all__ = [
    "messages",
    "dbimage",
    "scope",
    "community",
    "playback",
    "playback_v2",
    "controller",
]