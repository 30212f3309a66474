"""Jumble Clanker: a room bot that mirrors occupants' drafts and types jumbled replies."""

__version__ = "1.0.0"
