"""Command upgrade-project - move a v1 skill project to the v2 structure.

The upgrade runs in four steps, stopping at the first error:

  1. move the v1 project into ./legacy
  2. write the v2 skeleton (ask-resources.json, .ask/ask-states.json)
  3. import the skill package from the development stage
  4. copy the existing code out of ./legacy
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from ask_upgrade import constants
from ask_upgrade.errors import AskCliError
from ask_upgrade.logging_setup import configure_logging
from ask_upgrade.profile import runtime_profile
from ask_upgrade.resources_config import ResourcesConfig

from . import helper, hosted_skill_helper

logger = logging.getLogger(__name__)


def _fail(error: Exception) -> None:
    click.echo(f"[Error]: {error}", err=True)
    sys.exit(1)


def create_v2_hosted_skill_project(root: Path, info: helper.UpgradeInfo, profile: str) -> None:
    """Run the upgrade steps for an Alexa-hosted skill."""
    # move v1 content aside, then write and validate the v2 config
    helper.move_old_project_to_legacy_folder(root)
    hosted_skill_helper.create_v2_project_skeleton(root, info.skill_id, profile)
    ResourcesConfig.load(root / constants.ASK_RESOURCES_JSON_CONFIG)

    hosted_skill_helper.download_skill_package(
        root, info.skill_id, constants.STAGE_DEVELOPMENT, profile
    )

    hosted_skill_helper.handle_existing_lambda_code(root, profile)


def create_v2_non_hosted_skill_project(root: Path, info: helper.UpgradeInfo, profile: str) -> None:
    """Run the upgrade steps for a self-hosted (Lambda) skill."""
    # move v1 content aside, then write and validate the v2 config
    helper.move_old_project_to_legacy_folder(root)
    helper.create_v2_project_skeleton(root, info.skill_id, profile)
    ResourcesConfig.load(root / constants.ASK_RESOURCES_JSON_CONFIG)

    helper.download_skill_package(root, info.skill_id, constants.STAGE_DEVELOPMENT, profile)

    helper.handle_existing_lambda_code(root, info.lambda_resources, profile)


@click.command("upgrade-project")
@click.option("-p", "--profile", help="Profile to use for the upgrade")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.option("-y", "--yes", "assume_yes", is_flag=True, help="Skip the confirmation prompt")
def upgrade_project(profile: str | None, debug: bool, assume_yes: bool) -> None:
    """upgrade the v1 ask-cli skill project to v2 structure

    Run at the root of a v1 skill project (the folder holding .ask/config
    and skill.json).

    \b
    EXAMPLES:
      ask util upgrade-project
      ask util upgrade-project --profile work --debug
    """
    configure_logging(debug=debug)

    root = Path.cwd()

    # 1. confirm the project is upgradeable
    try:
        resolved_profile = runtime_profile(profile)
        info = helper.extract_upgrade_information(root, resolved_profile)
    except (AskCliError, OSError) as e:
        _fail(e)

    # 2. preview the new project structure
    try:
        confirmed = helper.preview_upgrade(info, assume_yes=assume_yes)
    except click.Abort:
        confirmed = False
    if not confirmed:
        click.echo("Command upgrade-project aborted.")
        return

    # 3. create the v2 project from the upgrade info
    logger.debug("Upgrading %s (hosted=%s) with profile %s", root, info.is_hosted, resolved_profile)
    try:
        if info.is_hosted:
            create_v2_hosted_skill_project(root, info, resolved_profile)
        else:
            create_v2_non_hosted_skill_project(root, info, resolved_profile)
    except (AskCliError, OSError) as e:
        _fail(e)

    click.echo("Project migration finished.")
