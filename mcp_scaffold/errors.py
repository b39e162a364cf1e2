"""Exception hierarchy for spec loading and project generation."""

from __future__ import annotations


class ScaffoldError(Exception):
    """Base class for every error raised by mcp_scaffold."""


class SpecParseError(ScaffoldError):
    """The OpenAPI document could not be turned into a ParsedSpec."""


class SpecLoadError(SpecParseError):
    """The document could not be fetched, read, parsed or dereferenced."""


class UnsupportedVersionError(SpecParseError):
    """The document does not declare an OpenAPI 3.x version."""


class GenerationError(ScaffoldError):
    """Project generation was aborted."""


class NameCollisionError(GenerationError):
    """Two endpoints produced the same canonical tool name."""


class DirectoryExistsError(GenerationError):
    """The target project directory already exists and is not empty."""
