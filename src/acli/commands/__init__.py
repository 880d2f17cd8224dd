"""Built-in CLI sub-commands for acli.

* :mod:`~acli.commands.auth` -- ``login``, ``logout``, ``whoami``, and
  ``status``, registered directly on the root app.
* :mod:`~acli.commands.config` -- the ``config`` group for viewing and
  modifying global settings.
"""
