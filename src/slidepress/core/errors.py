"""
errors.py — Error taxonomy for the resolution engine.

Fatal (abort the whole conversion, nothing is returned):
  MalformedPackage  archive cannot be opened
  NoSlidesFound     package has zero slide parts

Recoverable (absorbed where the element is walked, never surfaced):
  PartialResolutionLoss  unresolvable color / relationship / media, bad numbers
  EntryNotFound, MalformedPart  one part missing or unparseable
"""
from __future__ import annotations


class SlidepressError(Exception):
    """Base class for every error raised by slidepress."""


class MalformedPackage(SlidepressError):
    """The input bytes are not a readable zip package."""


class NoSlidesFound(SlidepressError):
    """The package opened fine but contains no ppt/slides/slideN.xml parts."""


class EntryNotFound(SlidepressError, KeyError):
    """A named entry does not exist in the package."""

    def __str__(self) -> str:
        return f"entry not found: {self.args[0] if self.args else '?'}"


class MalformedPart(SlidepressError):
    """An entry exists but its XML cannot be parsed."""


class PartialResolutionLoss(SlidepressError):
    """One element could not be resolved; the caller skips it or defaults."""


class ConfigError(SlidepressError):
    """A config file failed to load or validate."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors: list[str] = list(errors or [])
