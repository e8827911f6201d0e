"""Building blocks for a group chat bot: reminders, group management, games and lookups."""

__version__ = "0.1.0"