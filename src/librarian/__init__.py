"""Librarian - a personal bookmark manager."""

__version__ = "0.1.0"
