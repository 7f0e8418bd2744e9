"""
v2 project configuration: ask-resources.json and .ask/ask-states.json.

Both files are validated with Pydantic on load and written back as
2-space indented JSON. Unknown keys are preserved.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import constants
from .errors import ConfigError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ask-resources.json schema
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class SkillMetadataSchema(_CamelModel):
    """Where the skill package lives."""

    src: str

    @field_validator("src")
    @classmethod
    def validate_src(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("skillMetadata.src cannot be empty")
        return v


class CodeSchema(_CamelModel):
    """Source folder for one region's code."""

    src: str


class SkillInfrastructureSchema(_CamelModel):
    """Deployer type and its user config."""

    type: str
    user_config: dict[str, Any] | None = Field(default=None, alias="userConfig")


class ResourcesProfileSchema(_CamelModel):
    """Per-profile resources block."""

    skill_metadata: SkillMetadataSchema = Field(alias="skillMetadata")
    code: dict[str, CodeSchema] = Field(default_factory=dict)
    skill_infrastructure: SkillInfrastructureSchema | None = Field(
        default=None, alias="skillInfrastructure"
    )

    @field_validator("code")
    @classmethod
    def validate_regions(cls, v: dict[str, CodeSchema]) -> dict[str, CodeSchema]:
        unknown = [region for region in v if region not in constants.REGIONS]
        if unknown:
            raise ValueError(f"Unknown code region(s): {', '.join(unknown)}")
        return v


class ResourcesSchema(_CamelModel):
    """Top-level ask-resources.json."""

    askcli_resources_version: str = Field(alias="askcliResourcesVersion")
    profiles: dict[str, ResourcesProfileSchema] = Field(default_factory=dict)

    @field_validator("askcli_resources_version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        if v != constants.RESOURCES_VERSION:
            raise ValueError(
                f"Unsupported askcliResourcesVersion {v!r}, expected {constants.RESOURCES_VERSION!r}"
            )
        return v


# ---------------------------------------------------------------------------
# .ask/ask-states.json schema
# ---------------------------------------------------------------------------


class StatesProfileSchema(_CamelModel):
    """Per-profile deploy state."""

    skill_id: str = Field(default="", alias="skillId")
    skill_metadata: dict[str, Any] = Field(default_factory=dict, alias="skillMetadata")
    code: dict[str, dict[str, Any]] = Field(default_factory=dict)
    skill_infrastructure: dict[str, dict[str, Any]] = Field(
        default_factory=dict, alias="skillInfrastructure"
    )


class StatesSchema(_CamelModel):
    """Top-level ask-states.json."""

    askcli_states_version: str = Field(alias="askcliStatesVersion")
    profiles: dict[str, StatesProfileSchema] = Field(default_factory=dict)


def _read_json(path: Path) -> dict:
    if not path.is_file():
        raise ConfigError(f"File {path} not exists.")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to parse JSON file {path}: {e}") from e


def _write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def _format_validation_error(path: Path, error: ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors()
    )
    return f"Invalid config {path}: {details}"


class ResourcesConfig:
    """Loaded ask-resources.json with per-profile accessors."""

    def __init__(self, path: Path, schema: ResourcesSchema):
        self.path = Path(path)
        self.schema = schema

    @classmethod
    def new(cls, path: Path) -> "ResourcesConfig":
        """Create an empty config bound to path (not written until write())."""
        schema = ResourcesSchema(askcliResourcesVersion=constants.RESOURCES_VERSION)
        return cls(path, schema)

    @classmethod
    def load(cls, path: Path) -> "ResourcesConfig":
        """Load and validate ask-resources.json.

        Raises:
            ConfigError: If the file is missing, not JSON or fails validation
        """
        path = Path(path)
        data = _read_json(path)
        try:
            schema = ResourcesSchema.model_validate(data)
        except ValidationError as e:
            raise ConfigError(_format_validation_error(path, e)) from e
        logger.debug("Loaded resources config %s (%d profiles)", path, len(schema.profiles))
        return cls(path, schema)

    def to_dict(self) -> dict:
        return self.schema.model_dump(by_alias=True, exclude_none=True)

    def write(self) -> None:
        _write_json(self.path, self.to_dict())
        logger.debug("Wrote resources config %s", self.path)

    def get_profile(self, profile: str) -> ResourcesProfileSchema | None:
        return self.schema.profiles.get(profile)

    def _require_profile(self, profile: str) -> ResourcesProfileSchema:
        entry = self.get_profile(profile)
        if entry is None:
            raise ConfigError(f"Profile [{profile}] is not set in {self.path}.")
        return entry

    def set_skill_metadata_src(self, profile: str, src: str) -> None:
        """Set skillMetadata.src, creating the profile block if needed."""
        entry = self.get_profile(profile)
        if entry is None:
            self.schema.profiles[profile] = ResourcesProfileSchema(
                skillMetadata=SkillMetadataSchema(src=src)
            )
        else:
            entry.skill_metadata = SkillMetadataSchema(src=src)

    def set_code_src(self, profile: str, region: str, src: str) -> None:
        if region not in constants.REGIONS:
            raise ConfigError(f"Unknown code region {region!r}.")
        self._require_profile(profile).code[region] = CodeSchema(src=src)

    def set_skill_infrastructure(
        self,
        profile: str,
        infra_type: str,
        user_config: dict[str, Any] | None = None,
    ) -> None:
        self._require_profile(profile).skill_infrastructure = SkillInfrastructureSchema(
            type=infra_type, userConfig=user_config
        )


class AskStates:
    """Loaded .ask/ask-states.json with per-profile accessors."""

    def __init__(self, path: Path, schema: StatesSchema):
        self.path = Path(path)
        self.schema = schema

    @classmethod
    def new(cls, path: Path) -> "AskStates":
        return cls(path, StatesSchema(askcliStatesVersion=constants.STATES_VERSION))

    @classmethod
    def load(cls, path: Path) -> "AskStates":
        """Load and validate ask-states.json.

        Raises:
            ConfigError: If the file is missing, not JSON or fails validation
        """
        path = Path(path)
        data = _read_json(path)
        try:
            schema = StatesSchema.model_validate(data)
        except ValidationError as e:
            raise ConfigError(_format_validation_error(path, e)) from e
        return cls(path, schema)

    def to_dict(self) -> dict:
        return self.schema.model_dump(by_alias=True, exclude_none=True)

    def write(self) -> None:
        _write_json(self.path, self.to_dict())
        logger.debug("Wrote ask states %s", self.path)

    def _profile(self, profile: str) -> StatesProfileSchema:
        return self.schema.profiles.setdefault(profile, StatesProfileSchema())

    def set_skill_id(self, profile: str, skill_id: str) -> None:
        entry = self._profile(profile)
        entry.skill_id = skill_id
        entry.skill_metadata.setdefault("lastDeployHash", "")

    def set_lambda_deploy_state(
        self,
        profile: str,
        region: str,
        arn: str,
        revision_id: str | None = None,
    ) -> None:
        """Record an existing Lambda function for the lambda deployer."""
        deployer = self._profile(profile).skill_infrastructure.setdefault(
            constants.LAMBDA_DEPLOYER, {}
        )
        deploy_state = deployer.setdefault("deployState", {})
        region_state = deploy_state.setdefault(region, {})
        region_state["lambda"] = {"arn": arn, "revisionId": revision_id or ""}
        region_state.setdefault("iamRole", "")
