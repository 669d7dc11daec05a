"""Credo Mastery: spaced repetition for personal principles."""

from credo.consts import VERSION

__version__ = VERSION
