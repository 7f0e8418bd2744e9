"""ask util - utility commands for skill projects.

- ask util upgrade-project - upgrade a v1 skill project to the v2 structure
"""

import click

from ask_upgrade.util.upgrade_project import upgrade_project


@click.group("util")
def util() -> None:
    """Tooling for skill projects."""
    pass


# Register subcommands
util.add_command(upgrade_project)
