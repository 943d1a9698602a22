"""Built-in CLI sub-commands for speclens.

* :mod:`~speclens.commands.parse` -- print the unified spec.
* :mod:`~speclens.commands.analyze` -- metrics and strategy (``analyze``)
  and the full pipeline (``process``).
* :mod:`~speclens.commands.inspect` -- endpoints, schemas and detected
  patterns of a document.
* :mod:`~speclens.commands.config` -- view and modify settings.

Groups (``inspect``, ``config``) export a :class:`typer.Typer`; single
commands export a plain callback registered on the root app.
"""
