"""Command line client for the coastal tide monitor HTTP API.

The Typer application is ``cli.app.app``; it is not re-exported here so that
``cli.app`` keeps naming the module.
"""
