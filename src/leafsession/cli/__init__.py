"""
leafsession CLI.

- session: login, responders, logout
"""

import typer

from leafsession.cli.session import register_commands
from leafsession.logger import setup_logging

app = typer.Typer(help="Leaf session bootstrap client")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging (DEBUG level)"
    ),
):
    """
    Leaf session bootstrap client.
    """
    setup_logging("DEBUG" if verbose else "WARNING")


register_commands(app)

if __name__ == "__main__":
    app()
