"""Built-in CLI sub-commands for irsession.

* :mod:`~irsession.commands.keygen` -- create the AES key file.
* :mod:`~irsession.commands.auth` -- store, test, show and clear the login.
* :mod:`~irsession.commands.get` -- authenticated GET of any API path.
* :mod:`~irsession.commands.config` -- view and modify settings.

Multi-command groups export a :class:`typer.Typer` sub-application; single
commands export a plain callback registered on the root app.
"""
