"""
Helpers for upgrading a v1 skill project to the v2 layout.

v1 projects keep deploy settings in .ask/config and endpoints in skill.json:

    .ask/config       {"deploy_settings": {"<profile>": {"skill_id": ..., "resources": {"lambda": [...]}}}}
    skill.json        {"manifest": {"apis": {"custom": {"endpoint": {"sourceDir": ..., "uri": ...}}}}}
    lambda/custom/    function code

v2 projects are described by ask-resources.json and .ask/ask-states.json,
with the skill package under skill-package/.
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import click

from ask_upgrade import constants
from ask_upgrade.auth import resolve_access_token
from ask_upgrade.errors import SmapiError, UpgradeError
from ask_upgrade.resources_config import AskStates, ResourcesConfig
from ask_upgrade.smapi import SmapiClient
from ask_upgrade.zip_utils import archive_names, extract_zip_bytes

logger = logging.getLogger(__name__)


@dataclass
class LambdaTarget:
    """A deployed function serving one endpoint region."""

    region: str
    arn: str | None = None
    aws_region: str | None = None
    revision_id: str | None = None


@dataclass
class LambdaResource:
    """Code folder shared by one or more endpoint regions.

    Attributes:
        code_uri: Project-relative code folder (e.g. lambda/custom)
        runtime: Lambda runtime from the v1 deploy settings
        handler: Lambda handler from the v1 deploy settings
        targets: Deployed function per endpoint region
    """

    code_uri: str
    runtime: str | None = None
    handler: str | None = None
    targets: dict[str, LambdaTarget] = field(default_factory=dict)


@dataclass
class UpgradeInfo:
    """What extract_upgrade_information learned about the v1 project."""

    skill_id: str
    is_hosted: bool = False
    lambda_resources: dict[str, LambdaResource] = field(default_factory=dict)
    git_repo_url: str | None = None


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def _read_json_file(path: Path, label: str) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise UpgradeError(f"Failed to parse {label} file {path}: {e}") from e
    if not isinstance(data, dict):
        raise UpgradeError(f"{label} file {path} must contain a JSON object.")
    return data


def _check_legacy_folder(root: Path) -> None:
    legacy = root / constants.LEGACY_DIR
    if not legacy.exists():
        return
    if not legacy.is_dir() or any(legacy.iterdir()):
        raise UpgradeError(
            f'The "{constants.LEGACY_DIR}" path already exists in {root}. '
            "Please rename or remove it before upgrading."
        )


def _region_from_arn(arn: str | None) -> str | None:
    # arn:aws:lambda:<region>:<account>:function:<name>
    if not arn or not arn.startswith("arn:"):
        return None
    parts = arn.split(":")
    return parts[3] if len(parts) > 3 and parts[3] else None


def _normalize_code_uri(source_dir: str) -> str:
    """Turn a v1 sourceDir into a clean project-relative posix path."""
    path = PurePosixPath(source_dir.replace("\\", "/"))
    parts = [p for p in path.parts if p not in ("", ".")]
    if not parts or path.is_absolute() or ".." in parts:
        raise UpgradeError(f"Invalid sourceDir {source_dir!r} in skill.json.")
    return "/".join(parts)


def _collect_endpoints(apis: dict) -> list[tuple[str, str, dict]]:
    """Return (domain, region, endpoint) triples from manifest.apis."""
    endpoints = []
    for domain, api in apis.items():
        if not isinstance(api, dict):
            continue
        if isinstance(api.get("endpoint"), dict):
            endpoints.append((domain, constants.DEFAULT_REGION, api["endpoint"]))
        for region, region_info in (api.get("regions") or {}).items():
            if isinstance(region_info, dict) and isinstance(region_info.get("endpoint"), dict):
                endpoints.append((domain, region, region_info["endpoint"]))
    return endpoints


def _collect_lambda_resources(root: Path, deploy_settings: dict) -> dict[str, LambdaResource]:
    """Group the project's Lambda-backed endpoints by code folder."""
    skill_json_path = root / constants.V1_SKILL_JSON
    if not skill_json_path.is_file():
        raise UpgradeError(f"Failed to find {constants.V1_SKILL_JSON} in {root}.")
    skill_json = _read_json_file(skill_json_path, constants.V1_SKILL_JSON)

    apis = (skill_json.get("manifest") or {}).get("apis") or {}
    lambda_entries = (deploy_settings.get("resources") or {}).get("lambda") or []

    resources: dict[str, LambdaResource] = {}
    # code.<region> in ask-resources.json holds a single src
    region_code: dict[str, str] = {}
    for domain, region, endpoint in _collect_endpoints(apis):
        source_dir = endpoint.get("sourceDir")
        if not source_dir:
            logger.debug("Skipping %s/%s endpoint without sourceDir", domain, region)
            continue
        if region not in constants.REGIONS:
            raise UpgradeError(f"Unsupported endpoint region {region!r} for {domain} in skill.json.")

        code_uri = _normalize_code_uri(source_dir)
        claimed = region_code.setdefault(region, code_uri)
        if claimed != code_uri:
            raise UpgradeError(
                f'Region {region} is served by code folders "{claimed}" and "{code_uri}". '
                "Please upgrade the project manually."
            )
        usage = f"{domain}/{region}"
        entry = next(
            (e for e in lambda_entries if usage in (e.get("alexaUsage") or [])),
            {},
        )
        uri = endpoint.get("uri") or ""
        arn = entry.get("arn") or (uri if uri.startswith("arn:") else None)
        target = LambdaTarget(
            region=region,
            arn=arn,
            aws_region=entry.get("awsRegion") or _region_from_arn(arn),
            revision_id=entry.get("revisionId"),
        )

        resource = resources.setdefault(code_uri, LambdaResource(code_uri=code_uri))
        for attr in ("runtime", "handler"):
            value = entry.get(attr)
            current = getattr(resource, attr)
            if value and current and value != current:
                raise UpgradeError(
                    f'Code folder "{code_uri}" is deployed with conflicting {attr} '
                    f'values "{current}" and "{value}". Please upgrade the project manually.'
                )
            if value:
                setattr(resource, attr, value)

        existing = resource.targets.get(region)
        if existing and existing.arn != target.arn:
            raise UpgradeError(
                f'Code folder "{code_uri}" is bound to different Lambda functions '
                f'for region {region} ({existing.arn} and {target.arn}). '
                "Please upgrade the project manually."
            )
        resource.targets[region] = target
        logger.debug("Collected %s -> %s (%s)", usage, code_uri, arn)

    return resources


def extract_upgrade_information(root: Path, profile: str) -> UpgradeInfo:
    """Check the project at root can be upgraded and gather what the upgrade needs.

    Raises:
        UpgradeError: If the project is not an upgradeable v1 project
    """
    root = Path(root)
    if (root / constants.ASK_RESOURCES_JSON_CONFIG).exists():
        raise UpgradeError(
            f"{constants.ASK_RESOURCES_JSON_CONFIG} already exists. "
            "The project is already in the v2 structure."
        )

    hidden_config_path = root / constants.V1_HIDDEN_CONFIG
    if not hidden_config_path.is_file():
        raise UpgradeError(
            "Failed to find ask-cli v1 project. Please make sure this command "
            "is called at the root of the skill project."
        )
    hidden_config = _read_json_file(hidden_config_path, constants.V1_HIDDEN_CONFIG)

    deploy_settings = (hidden_config.get("deploy_settings") or {}).get(profile)
    if not isinstance(deploy_settings, dict):
        raise UpgradeError(
            f"Profile [{profile}] is not configured in the v1 ask-cli's project. "
            f'Please check "{constants.V1_HIDDEN_CONFIG}" file.'
        )

    skill_id = deploy_settings.get("skill_id")
    if not isinstance(skill_id, str) or not skill_id.strip():
        raise UpgradeError(
            f'Failed to find skill_id for profile [{profile}] in "{constants.V1_HIDDEN_CONFIG}". '
            "The skill must be deployed before it can be upgraded."
        )

    _check_legacy_folder(root)

    hosted = deploy_settings.get("alexaHosted") or {}
    if hosted.get("isAlexaHostedSkill"):
        logger.info("Detected Alexa-hosted skill %s", skill_id)
        return UpgradeInfo(
            skill_id=skill_id,
            is_hosted=True,
            git_repo_url=hosted.get("gitRepoUrl"),
        )

    lambda_resources = _collect_lambda_resources(root, deploy_settings)
    logger.info("Detected skill %s with %d code folder(s)", skill_id, len(lambda_resources))
    return UpgradeInfo(skill_id=skill_id, lambda_resources=lambda_resources)


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------


def format_upgrade_preview(info: UpgradeInfo) -> str:
    """Render the v2 layout the upgrade will produce."""
    entries = [
        (f"{constants.ASK_STATES_JSON_CONFIG}", "deploy states, skill id " + info.skill_id),
        (constants.ASK_RESOURCES_JSON_CONFIG, "v2 resources config"),
        (f"{constants.LEGACY_DIR}/", "the original v1 project"),
        (f"{constants.SKILL_PACKAGE_DIR}/", f"imported from the {constants.STAGE_DEVELOPMENT} stage"),
    ]
    if info.is_hosted:
        entries.append((f"{constants.HOSTED_CODE_DIR}/", "hosted skill code"))
    else:
        for code_uri, resource in sorted(info.lambda_resources.items()):
            regions = ", ".join(resource.targets)
            entries.append((f"{code_uri}/", f"code for region(s): {regions}"))

    lines = [
        "Preview of the upgrade result from v1 to v2:",
        f'- The original v1 skill project will be moved into the "{constants.LEGACY_DIR}" folder',
        "- The v2 skill project will have the following structure:",
        "  ./",
    ]
    width = max(len(name) for name, _ in entries)
    for i, (name, note) in enumerate(entries):
        branch = "└──" if i == len(entries) - 1 else "├──"
        lines.append(f"  {branch} {name:<{width}}  # {note}")
    if info.is_hosted:
        lines.append(
            f'- The "{constants.LEGACY_DIR}" folder will be removed after the code '
            f'is copied, and git will switch to the "{constants.HOSTED_DEV_BRANCH}" branch'
        )
        if info.git_repo_url:
            lines.append(f"- Hosted skill repository: {info.git_repo_url}")
    elif not info.lambda_resources:
        lines.append("- No Lambda code was found, only the skill package will be imported")
    return "\n".join(lines)


def preview_upgrade(info: UpgradeInfo, assume_yes: bool = False) -> bool:
    """Show the upgrade preview and ask the user to confirm."""
    click.echo(format_upgrade_preview(info))
    click.echo()
    if assume_yes:
        return True
    return click.confirm(
        "Do you want to execute the upgrade based on the preview above?",
        default=False,
    )


# ---------------------------------------------------------------------------
# Upgrade steps
# ---------------------------------------------------------------------------


def move_old_project_to_legacy_folder(root: Path) -> list[str]:
    """Move every root entry except .git into ./legacy.

    Returns:
        Names of the moved entries

    Raises:
        UpgradeError: If a non-empty legacy folder already exists, or an
            entry cannot be moved (the message lists what already moved)
    """
    root = Path(root)
    _check_legacy_folder(root)
    legacy = root / constants.LEGACY_DIR
    legacy.mkdir(exist_ok=True)

    moved = []
    for entry in sorted(root.iterdir()):
        if entry.name in (constants.LEGACY_DIR, constants.GIT_DIR):
            continue
        try:
            shutil.move(str(entry), str(legacy / entry.name))
        except OSError as e:
            already = ", ".join(moved) or "nothing"
            raise UpgradeError(
                f"Failed to move {entry.name} into {legacy}: {e}. "
                f"Already moved: {already}. Move them back to {root} before retrying."
            ) from e
        moved.append(entry.name)
    logger.info("Moved %d entries into %s", len(moved), legacy)
    return moved


def write_gitignore(root: Path) -> None:
    """Write a .gitignore for generated folders unless one already exists."""
    gitignore = Path(root) / constants.GITIGNORE
    if gitignore.exists():
        return
    gitignore.write_text(f"{constants.CLI_CONFIG_DIR}/\n{constants.LEGACY_DIR}/\n", encoding="utf-8")


def create_v2_project_skeleton(root: Path, skill_id: str, profile: str) -> None:
    """Create skill-package/, ask-resources.json and .ask/ask-states.json."""
    root = Path(root)
    (root / constants.SKILL_PACKAGE_DIR).mkdir(parents=True, exist_ok=True)

    resources = ResourcesConfig.new(root / constants.ASK_RESOURCES_JSON_CONFIG)
    resources.set_skill_metadata_src(profile, constants.SKILL_PACKAGE_SRC)
    resources.write()

    states = AskStates.new(root / constants.ASK_STATES_JSON_CONFIG)
    states.set_skill_id(profile, skill_id)
    states.write()

    write_gitignore(root)
    logger.info("Created v2 project skeleton for skill %s", skill_id)


def _export_package_archive(client: SmapiClient, skill_id: str, stage: str) -> bytes:
    export_id = client.export_package(skill_id, stage)
    status = client.poll_export(export_id)
    location = (status.get("skill") or {}).get("location")
    if not location:
        raise SmapiError(f"Skill package export {export_id} did not return a download location.")
    return client.download(location)


def download_skill_package(
    root: Path,
    skill_id: str,
    stage: str,
    profile: str,
    client: SmapiClient | None = None,
) -> list[str]:
    """Export the skill package from stage and extract it under skill-package/.

    Returns:
        Names of the extracted archive entries
    """
    root = Path(root)
    if client is None:
        with SmapiClient(resolve_access_token(profile)) as owned:
            data = _export_package_archive(owned, skill_id, stage)
    else:
        data = _export_package_archive(client, skill_id, stage)

    # Exported archives normally carry the skill-package/ prefix themselves
    prefix = f"{constants.SKILL_PACKAGE_DIR}/"
    names = archive_names(data)
    if names and all(n.startswith(prefix) for n in names):
        target = root
    else:
        target = root / constants.SKILL_PACKAGE_DIR
    extracted = extract_zip_bytes(data, target)
    logger.info("Imported skill package for %s into %s", skill_id, target)
    return extracted


def _lambda_user_config(resource: LambdaResource, target: LambdaTarget) -> dict:
    config = {
        "runtime": resource.runtime,
        "handler": resource.handler,
        "awsRegion": target.aws_region,
    }
    return {k: v for k, v in config.items() if v}


def handle_existing_lambda_code(
    root: Path,
    lambda_resources: dict[str, LambdaResource],
    profile: str,
) -> None:
    """Copy v1 code folders out of legacy/ and record them in the v2 configs.

    Raises:
        UpgradeError: If a code folder is missing from legacy/
    """
    root = Path(root)
    if not lambda_resources:
        logger.info("No Lambda code to migrate")
        return

    legacy = root / constants.LEGACY_DIR
    resources = ResourcesConfig.load(root / constants.ASK_RESOURCES_JSON_CONFIG)
    states = AskStates.load(root / constants.ASK_STATES_JSON_CONFIG)

    region_configs: dict[str, dict] = {}
    for code_uri, resource in sorted(lambda_resources.items()):
        source = legacy / code_uri
        if not source.is_dir():
            raise UpgradeError(f"Failed to find code folder {code_uri} in {legacy}.")
        shutil.copytree(source, root / code_uri, dirs_exist_ok=True)
        logger.info("Copied %s into the v2 project", code_uri)

        for region, target in resource.targets.items():
            resources.set_code_src(profile, region, f"./{code_uri}")
            if target.arn:
                states.set_lambda_deploy_state(profile, region, target.arn, target.revision_id)
            region_configs[region] = _lambda_user_config(resource, target)

    base_region = (
        constants.DEFAULT_REGION
        if constants.DEFAULT_REGION in region_configs
        else next(iter(region_configs))
    )
    user_config = dict(region_configs[base_region])
    overrides = {}
    for region, config in region_configs.items():
        if region == base_region:
            continue
        diff = {k: v for k, v in config.items() if user_config.get(k) != v}
        if diff:
            overrides[region] = diff
    if overrides:
        user_config["regionalOverrides"] = overrides

    if user_config.get("runtime") and user_config.get("handler"):
        resources.set_skill_infrastructure(profile, constants.LAMBDA_DEPLOYER, user_config)
    else:
        logger.warning(
            "Runtime or handler unknown for profile %s, skillInfrastructure left unset", profile
        )

    resources.write()
    states.write()
