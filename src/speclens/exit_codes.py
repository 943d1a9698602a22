"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~speclens.exceptions.SpeclensError` subclass.
CI scripts that run ``speclens analyze`` as a gate can inspect the exit
code to tell a malformed document from an unreachable one without parsing
stderr.

Example::

    $ speclens analyze swagger2.json
    $ echo $?
    7   # EXIT_SPEC_ERROR -- the document is not a supported version
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_SOURCE_ERROR = 6
"""The source document could not be read (missing file, network failure, empty stdin)."""

EXIT_SPEC_ERROR = 7
"""The API description could not be decoded, is an unsupported version, or is incomplete."""

EXIT_CANCELLED = 130
"""Processing was cancelled (Ctrl-C or a cancellation token)."""
