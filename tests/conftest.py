"""Shared fixtures: isolated HOME, CLI config and v1 project builders."""

import io
import json
import logging
import zipfile
from datetime import datetime, timedelta, timezone

import pytest

from ask_upgrade import logging_setup

ASK_ENV_VARS = [
    "ASK_DEFAULT_PROFILE",
    "ASK_ACCESS_TOKEN",
    "ASK_REFRESH_TOKEN",
    "ASK_VENDOR_ID",
    "ASK_LWA_CLIENT_ID",
    "ASK_LWA_CLIENT_CONFIRMATION",
    "ASK_LWA_TOKEN_HOST",
    "ASK_SMAPI_SERVER_BASE_URL",
]

SKILL_ID = "amzn1.ask.skill.11111111-2222-3333-4444-555555555555"
CUSTOM_ARN = "arn:aws:lambda:us-east-1:123456789012:function:ask-custom-hello"
EU_ARN = "arn:aws:lambda:eu-west-1:123456789012:function:ask-custom-hello-eu"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Point HOME at a temp dir and clear ASK_* variables."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in ASK_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def write_cli_config(isolated_env):
    """Write ~/.ask/cli_config with the given profiles."""

    def _write(profiles: dict) -> None:
        config_dir = isolated_env / ".ask"
        config_dir.mkdir(exist_ok=True)
        (config_dir / "cli_config").write_text(json.dumps({"profiles": profiles}))

    return _write


@pytest.fixture
def default_profile(write_cli_config):
    """CLI config with a 'default' profile holding a fresh token."""
    expires_at = (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat()
    write_cli_config(
        {
            "default": {
                "token": {
                    "access_token": "Atza|fresh",
                    "refresh_token": "Atzr|refresh",
                    "token_type": "bearer",
                    "expires_in": 3600,
                    "expires_at": expires_at,
                },
                "vendor_id": "M123",
            }
        }
    )
    return "default"


def make_v1_project(root, deploy_settings: dict, skill_json: dict | None = None) -> None:
    """Lay out a minimal v1 project at root."""
    (root / ".ask").mkdir(parents=True, exist_ok=True)
    (root / ".ask" / "config").write_text(json.dumps({"deploy_settings": deploy_settings}))
    if skill_json is not None:
        (root / "skill.json").write_text(json.dumps(skill_json))
    models = root / "models"
    models.mkdir(exist_ok=True)
    (models / "en-US.json").write_text("{}")


@pytest.fixture
def v1_project(tmp_path):
    """A non-hosted v1 project with one custom Lambda in lambda/custom."""
    root = tmp_path / "hello-world"
    root.mkdir()
    make_v1_project(
        root,
        {
            "default": {
                "skill_id": SKILL_ID,
                "was_cloned": False,
                "merge": {},
                "resources": {
                    "lambda": [
                        {
                            "alexaUsage": ["custom/default"],
                            "arn": CUSTOM_ARN,
                            "awsRegion": "us-east-1",
                            "runtime": "nodejs10.x",
                            "handler": "index.handler",
                            "revisionId": "rev-1",
                        }
                    ]
                },
            }
        },
        {
            "manifest": {
                "apis": {
                    "custom": {
                        "endpoint": {"sourceDir": "lambda/custom", "uri": "ask-custom-hello"}
                    }
                }
            }
        },
    )
    code = root / "lambda" / "custom"
    code.mkdir(parents=True)
    (code / "index.js").write_text("exports.handler = () => {};\n")
    return root


@pytest.fixture
def hosted_project(tmp_path):
    """An Alexa-hosted v1 project."""
    root = tmp_path / "hosted"
    root.mkdir()
    make_v1_project(
        root,
        {
            "default": {
                "skill_id": SKILL_ID,
                "alexaHosted": {
                    "isAlexaHostedSkill": True,
                    "gitRepoUrl": "https://git-codecommit.us-east-1.amazonaws.com/v1/repos/abc",
                },
            }
        },
        {"manifest": {"apis": {"custom": {}}}},
    )
    code = root / "lambda" / "custom"
    code.mkdir(parents=True)
    (code / "index.js").write_text("// hosted\n")
    return root


def make_zip(entries: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def skill_package_zip():
    return make_zip(
        {
            "skill-package/skill.json": json.dumps({"manifest": {"publishingInformation": {}}}),
            "skill-package/interactionModels/custom/en-US.json": "{}",
        }
    )


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop the CLI log handler so it never outlives a CliRunner stream."""
    yield
    if logging_setup._handler is not None:
        logging.getLogger("ask_upgrade").removeHandler(logging_setup._handler)
        logging_setup._handler = None
