"""Read API descriptions from a URL, local file, or stdin, and decode them.

This module is split in two halves:

* **Source I/O** (:func:`load_source`) -- fetches the raw text from a URL
  (via :mod:`httpx`), a local file, or stdin. Only the CLI calls this; the
  parsing core never touches the network or filesystem.
* **Decoding** (:func:`decode_document`, :func:`detect_format`) -- turns text
  into a ``dict`` (JSON first, YAML second) and sniffs which of the four
  supported formats it is. Both are pure functions.

After decoding, the dict is handed to the matching format parser through
:func:`~speclens.parser.parse_spec`.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from speclens.exceptions import FormatError, SourceError
from speclens.models import SpecFormat


def load_source(source: str, timeout: float = 30.0) -> str:
    """Load a document's text from URL, file path, or stdin ('-').

    Args:
        source: A URL (http/https), file path, or '-' for stdin.
        timeout: Request timeout in seconds for URL sources.

    Returns:
        The raw document text.

    Raises:
        SourceError: If the source cannot be read or is empty.
    """
    if source == "-":
        return _load_from_stdin()
    elif source.startswith(("http://", "https://")):
        return _load_from_url(source, timeout)
    else:
        return _load_from_file(source)


def _load_from_stdin() -> str:
    """Read a document from stdin.

    Raises:
        SourceError: If stdin cannot be read or is empty.
    """
    try:
        content = sys.stdin.read()
    except Exception as exc:
        raise SourceError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SourceError("No input received from stdin")

    return content


def _load_from_url(url: str, timeout: float) -> str:
    """Fetch a document from a URL.

    Args:
        url: The HTTP(S) URL to fetch.
        timeout: Request timeout in seconds.

    Returns:
        The response body as text.

    Raises:
        SourceError: If the URL cannot be fetched.
    """
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SourceError(
            f"HTTP {exc.response.status_code} fetching spec from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise SourceError(f"Failed to fetch spec from {url}: {exc}") from exc

    if not response.text.strip():
        raise SourceError(f"Empty response body from {url}")
    return response.text


def _load_from_file(path: str) -> str:
    """Load a document from a local file.

    Args:
        path: Path to the local file.

    Returns:
        The file contents.

    Raises:
        SourceError: If the file is missing, unreadable, or empty.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SourceError(f"Spec file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceError(f"Failed to read spec file {path}: {exc}") from exc

    if not content.strip():
        raise SourceError(f"Spec file is empty: {path}")

    return content


def decode_document(content: str, hint: str = "") -> dict[str, Any]:
    """Decode text as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    This order is chosen because valid JSON is also valid YAML, but JSON
    parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint ('json' or 'yaml').

    Returns:
        The decoded dictionary.

    Raises:
        FormatError: If the content cannot be decoded as either format, or
            decodes to something other than a mapping.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    # Try JSON first unless explicitly hinted as YAML
    if hint != "yaml":
        try:
            result = json.loads(content)
            if not isinstance(result, dict):
                raise FormatError(
                    f"document must be a JSON/YAML object (got {type(result).__name__})"
                )
            return result
        except json.JSONDecodeError as exc:
            json_error = exc
            # If the hint was explicitly JSON, don't try YAML
            if hint == "json":
                raise FormatError(f"invalid JSON: {exc}") from exc

    # Try YAML
    try:
        result = yaml.safe_load(content)
        if not isinstance(result, dict):
            raise FormatError(
                "document must be a JSON/YAML object (got "
                f"{type(result).__name__ if result is not None else 'empty document'})"
            )
        return result
    except yaml.YAMLError as exc:
        yaml_error = exc

    # Both failed
    msg = "failed to decode as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise FormatError(msg)


def detect_format(document: dict[str, Any]) -> SpecFormat:
    """Identify which supported format a decoded document is.

    Detection looks at self-describing markers only:

    * ``openapi`` or ``swagger`` key -- OpenAPI (Swagger is later rejected
      as an unsupported version rather than an unknown format).
    * ``asyncapi`` key -- AsyncAPI.
    * ``info.schema`` naming a Postman collection schema -- Postman.
    * ``kind: Document`` -- a GraphQL SDL AST.

    Args:
        document: The decoded document.

    Returns:
        The detected :class:`~speclens.models.SpecFormat`.

    Raises:
        FormatError: If no marker matches.
    """
    if "openapi" in document or "swagger" in document:
        return SpecFormat.OPENAPI
    if "asyncapi" in document:
        return SpecFormat.ASYNCAPI
    info = document.get("info")
    if isinstance(info, dict) and "postman" in str(info.get("schema", "")).lower():
        return SpecFormat.POSTMAN
    if document.get("kind") == "Document":
        return SpecFormat.GRAPHQL
    raise FormatError(
        "unrecognised document: expected an 'openapi', 'asyncapi', Postman "
        "'info.schema', or GraphQL 'kind: Document' marker"
    )
