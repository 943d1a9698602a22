"""Exception hierarchy for speclens.

All exceptions inherit from :class:`SpeclensError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`speclens.exit_codes`.
The top-level error handler in :func:`speclens.app.main` catches
``SpeclensError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Parser errors carry structured fields (``format``, ``version``,
``missing``) so callers can compose their own messages without re-parsing
the document.

Subclass hierarchy::

    SpeclensError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- SourceError                (exit 6)
    +-- SpecError                  (exit 7)
    |   +-- FormatError
    |   +-- UnsupportedVersionError
    |   +-- ValidationError
    +-- CancelledError             (exit 130)
    +-- StreamConsumedError        (exit 1)
    +-- ConfigError                (exit 1)
"""

from __future__ import annotations

from typing import Optional, Sequence

from speclens.exit_codes import (
    EXIT_CANCELLED,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SOURCE_ERROR,
    EXIT_SPEC_ERROR,
)


class SpeclensError(Exception):
    """Base exception for all speclens errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`speclens.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpeclensError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class SourceError(SpeclensError):
    """Raised when a document cannot be read from a file, URL, or stdin."""

    exit_code = EXIT_SOURCE_ERROR


class SpecError(SpeclensError):
    """Base class for every error raised while decoding or parsing a document.

    Any ``SpecError`` aborts the whole parse call; no partial
    :class:`~speclens.models.UnifiedSpec` is ever returned alongside one.
    """

    exit_code = EXIT_SPEC_ERROR


class FormatError(SpecError):
    """Raised when the text is not valid JSON/YAML or is not a recognised format.

    Args:
        detail: Description of what could not be decoded or recognised.
        format: The format being parsed, when already known.
    """

    def __init__(self, detail: str, format: Optional[str] = None):
        self.detail = detail
        self.format = format
        prefix = f"Malformed {format} document" if format else "Malformed document"
        super().__init__(f"{prefix}: {detail}")


class UnsupportedVersionError(SpecError):
    """Raised when a document declares a major version outside the supported range.

    Args:
        format: The document format (``openapi``, ``asyncapi``, ...).
        version: The declared version marker, or ``None`` when it is absent.
        supported: Human-readable description of the accepted range.
    """

    def __init__(self, format: str, version: Optional[str], supported: str):
        self.format = format
        self.version = version
        self.supported = supported
        declared = version if version is not None else "<missing>"
        super().__init__(
            f"Unsupported {format} version: {declared} (supported: {supported})"
        )


class ValidationError(SpecError):
    """Raised when required top-level fields are missing.

    ``missing`` holds every absent field as a dotted path (e.g.
    ``info.title``), never just the first one found.

    Args:
        format: The document format being validated.
        missing: All missing field paths, in document order.
    """

    def __init__(self, format: str, missing: Sequence[str]):
        self.format = format
        self.missing = list(missing)
        super().__init__(
            f"Invalid {format} document: missing required field(s): "
            + ", ".join(self.missing)
        )


class CancelledError(SpeclensError):
    """Raised when processing observes a triggered cancellation token.

    Any chunk output completed before the cancellation was observed is
    discarded.
    """

    exit_code = EXIT_CANCELLED

    def __init__(self, message: str = "Processing cancelled"):
        super().__init__(message)


class StreamConsumedError(SpeclensError):
    """Raised when a :class:`~speclens.processing.stream.SpecStream` is iterated twice."""


class ConfigError(SpeclensError):
    """Raised for configuration problems (invalid JSON, unknown keys, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
