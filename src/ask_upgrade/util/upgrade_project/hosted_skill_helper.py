"""Upgrade steps specific to Alexa-hosted skill projects."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ask_upgrade import constants, git_client
from ask_upgrade.errors import UpgradeError
from ask_upgrade.resources_config import AskStates, ResourcesConfig
from ask_upgrade.smapi import SmapiClient

from . import helper

logger = logging.getLogger(__name__)


def create_v2_project_skeleton(root: Path, skill_id: str, profile: str) -> None:
    """Create the v2 skeleton wired to the hosted skill deployer."""
    root = Path(root)
    (root / constants.SKILL_PACKAGE_DIR).mkdir(parents=True, exist_ok=True)

    resources = ResourcesConfig.new(root / constants.ASK_RESOURCES_JSON_CONFIG)
    resources.set_skill_metadata_src(profile, constants.SKILL_PACKAGE_SRC)
    resources.set_code_src(profile, constants.DEFAULT_REGION, constants.HOSTED_CODE_SRC)
    resources.set_skill_infrastructure(profile, constants.HOSTED_SKILL_DEPLOYER)
    resources.write()

    states = AskStates.new(root / constants.ASK_STATES_JSON_CONFIG)
    states.set_skill_id(profile, skill_id)
    states.write()

    helper.write_gitignore(root)
    logger.info("Created v2 hosted skill skeleton for skill %s", skill_id)


def download_skill_package(
    root: Path,
    skill_id: str,
    stage: str,
    profile: str,
    client: SmapiClient | None = None,
) -> list[str]:
    """Import the hosted skill's package; hosted skills export like any other."""
    return helper.download_skill_package(root, skill_id, stage, profile, client=client)


def _legacy_code_folder(legacy: Path) -> Path:
    custom = legacy / constants.V1_HOSTED_LAMBDA_CUSTOM_DIR
    if custom.is_dir():
        return custom
    return legacy / constants.V1_HOSTED_LAMBDA_DIR


def handle_existing_lambda_code(root: Path, profile: str) -> None:
    """Move hosted code to lambda/, switch git to the dev branch, drop legacy/.

    Raises:
        UpgradeError: If the legacy project has no code folder
        GitError: If the branch switch fails
    """
    root = Path(root)
    legacy = root / constants.LEGACY_DIR
    source = _legacy_code_folder(legacy)
    if not source.is_dir():
        raise UpgradeError(
            f"Failed to find hosted skill code in {legacy / constants.V1_HOSTED_LAMBDA_DIR}."
        )

    if git_client.is_git_repo(root):
        git_client.checkout_branch(root, constants.HOSTED_DEV_BRANCH)
    else:
        logger.warning("%s is not a git repository, skipping branch setup", root)

    shutil.copytree(source, root / constants.HOSTED_CODE_DIR, dirs_exist_ok=True)
    logger.info("Copied hosted skill code for profile %s", profile)

    shutil.rmtree(legacy)
    logger.info("Removed %s", legacy)
