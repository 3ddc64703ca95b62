"""ccnotify: desktop notifications with click-to-focus for terminal coding assistants."""

__version__ = "0.4.0"
