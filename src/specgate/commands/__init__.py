"""Built-in CLI sub-commands for specgate.

* :mod:`~specgate.commands.validate` -- validate requests, responses, and
  recorded exchanges against the active contract.
* :mod:`~specgate.commands.inspect` -- examine paths, schemas, and general
  info of the loaded document.
* :mod:`~specgate.commands.config` -- view and modify global settings.

Each module exports a :class:`typer.Typer` sub-application registered on the
root app by :func:`specgate.app.main`.
"""
