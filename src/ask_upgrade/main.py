"""ask CLI - skill project tooling.

This module provides the main entry point for the `ask` command:
  - ask util upgrade-project - upgrade a v1 skill project to v2

Usage:
    ask --help
    ask --version
    ask util upgrade-project --profile default
"""

import click

from ask_upgrade.util import util


def get_version() -> str:
    """Get the installed version, falling back to the package constant."""
    try:
        from importlib.metadata import version
        return version("ask-upgrade")
    except Exception:
        pass

    from ask_upgrade import __version__
    return __version__


@click.group()
@click.version_option(get_version(), "--version", "-V", prog_name="ask")
def cli() -> None:
    """ask - Alexa skill project tooling.

    \b
    COMMANDS:
      util  - Utility commands for skill projects

    \b
    EXAMPLES:
      ask util upgrade-project
      ask util upgrade-project -p work --debug
    """
    pass


# Register command groups
cli.add_command(util)


def main() -> None:
    """Main entry point for the ask CLI."""
    cli()


if __name__ == "__main__":
    main()
