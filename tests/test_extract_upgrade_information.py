"""Tests for v1 project detection and Lambda resource collection."""

import json

import pytest

from ask_upgrade.errors import UpgradeError
from ask_upgrade.util.upgrade_project.helper import extract_upgrade_information

from conftest import CUSTOM_ARN, EU_ARN, SKILL_ID, make_v1_project


class TestExtractUpgradeInformation:
    """Tests for eligibility checks in extract_upgrade_information()."""

    def test_non_hosted_project(self, v1_project):
        """Happy: skill id and the custom Lambda are collected."""
        info = extract_upgrade_information(v1_project, "default")

        assert info.skill_id == SKILL_ID
        assert info.is_hosted is False
        assert list(info.lambda_resources) == ["lambda/custom"]
        resource = info.lambda_resources["lambda/custom"]
        assert resource.runtime == "nodejs10.x"
        assert resource.handler == "index.handler"
        target = resource.targets["default"]
        assert target.arn == CUSTOM_ARN
        assert target.aws_region == "us-east-1"
        assert target.revision_id == "rev-1"

    def test_hosted_project(self, hosted_project):
        """Happy: hosted projects are flagged and skip Lambda collection."""
        info = extract_upgrade_information(hosted_project, "default")

        assert info.is_hosted is True
        assert info.skill_id == SKILL_ID
        assert info.lambda_resources == {}
        assert info.git_repo_url.endswith("/repos/abc")

    def test_already_v2_raises(self, v1_project):
        """Failure: an ask-resources.json at root means nothing to upgrade."""
        (v1_project / "ask-resources.json").write_text("{}")
        with pytest.raises(UpgradeError, match="already in the v2 structure"):
            extract_upgrade_information(v1_project, "default")

    def test_not_a_v1_project_raises(self, tmp_path):
        """Failure: no .ask/config at the working directory."""
        with pytest.raises(UpgradeError, match="Failed to find ask-cli v1 project"):
            extract_upgrade_information(tmp_path, "default")

    def test_malformed_hidden_config_raises(self, tmp_path):
        (tmp_path / ".ask").mkdir()
        (tmp_path / ".ask" / "config").write_text("{oops")
        with pytest.raises(UpgradeError, match="Failed to parse"):
            extract_upgrade_information(tmp_path, "default")

    def test_non_utf8_hidden_config_raises(self, tmp_path):
        """Failure: undecodable bytes are reported as a parse error."""
        (tmp_path / ".ask").mkdir()
        (tmp_path / ".ask" / "config").write_bytes(b'{"deploy_settings": "\xff"}')
        with pytest.raises(UpgradeError, match="Failed to parse"):
            extract_upgrade_information(tmp_path, "default")

    def test_profile_not_in_project_raises(self, v1_project):
        """Failure: the runtime profile has no deploy settings in .ask/config."""
        with pytest.raises(UpgradeError, match=r"Profile \[work\] is not configured"):
            extract_upgrade_information(v1_project, "work")

    def test_blank_skill_id_raises(self, tmp_path):
        """Failure: an undeployed skill has no skill id to import from."""
        make_v1_project(tmp_path, {"default": {"skill_id": ""}}, {"manifest": {}})
        with pytest.raises(UpgradeError, match="Failed to find skill_id"):
            extract_upgrade_information(tmp_path, "default")

    def test_existing_legacy_folder_raises(self, v1_project):
        """Failure: a non-empty legacy/ would be overwritten."""
        (v1_project / "legacy").mkdir()
        (v1_project / "legacy" / "old.txt").write_text("x")
        with pytest.raises(UpgradeError, match='"legacy" path already exists'):
            extract_upgrade_information(v1_project, "default")

    def test_missing_skill_json_raises(self, tmp_path):
        make_v1_project(tmp_path, {"default": {"skill_id": SKILL_ID}})
        with pytest.raises(UpgradeError, match="skill.json"):
            extract_upgrade_information(tmp_path, "default")


class TestLambdaResourceCollection:
    """Tests for grouping endpoints by code folder."""

    def _project(self, tmp_path, apis, lambdas):
        make_v1_project(
            tmp_path,
            {"default": {"skill_id": SKILL_ID, "resources": {"lambda": lambdas}}},
            {"manifest": {"apis": apis}},
        )
        return tmp_path

    def test_regional_endpoints_share_code_folder(self, tmp_path):
        """Happy: default and EU endpoints with the same sourceDir form one resource."""
        root = self._project(
            tmp_path,
            {
                "custom": {
                    "endpoint": {"sourceDir": "./lambda/custom/", "uri": CUSTOM_ARN},
                    "regions": {"EU": {"endpoint": {"sourceDir": "lambda/custom", "uri": EU_ARN}}},
                }
            },
            [
                {"alexaUsage": ["custom/default"], "arn": CUSTOM_ARN, "runtime": "nodejs10.x", "handler": "index.handler"},
                {"alexaUsage": ["custom/EU"], "arn": EU_ARN, "runtime": "nodejs10.x", "handler": "index.handler"},
            ],
        )
        info = extract_upgrade_information(root, "default")

        resource = info.lambda_resources["lambda/custom"]
        assert set(resource.targets) == {"default", "EU"}
        assert resource.targets["EU"].aws_region == "eu-west-1"

    def test_arn_taken_from_endpoint_uri(self, tmp_path):
        """Happy: without a deploy entry, an ARN uri is still recorded."""
        root = self._project(
            tmp_path,
            {"custom": {"endpoint": {"sourceDir": "lambda/custom", "uri": CUSTOM_ARN}}},
            [],
        )
        target = extract_upgrade_information(root, "default").lambda_resources["lambda/custom"].targets["default"]
        assert target.arn == CUSTOM_ARN
        assert target.aws_region == "us-east-1"

    def test_https_endpoint_is_skipped(self, tmp_path):
        """Happy: endpoints without sourceDir are not migrated as code."""
        root = self._project(
            tmp_path,
            {"custom": {"endpoint": {"uri": "https://example.com/skill", "sslCertificateType": "Wildcard"}}},
            [],
        )
        assert extract_upgrade_information(root, "default").lambda_resources == {}

    def test_conflicting_arns_for_same_region_raise(self, tmp_path):
        """Failure: two domains bind one folder to different functions in one region."""
        other_arn = CUSTOM_ARN + "-other"
        root = self._project(
            tmp_path,
            {
                "custom": {"endpoint": {"sourceDir": "lambda/shared", "uri": CUSTOM_ARN}},
                "smartHome": {"endpoint": {"sourceDir": "lambda/shared", "uri": other_arn}},
            },
            [],
        )
        with pytest.raises(UpgradeError, match="different Lambda functions"):
            extract_upgrade_information(root, "default")

    def test_conflicting_runtime_raises(self, tmp_path):
        """Failure: one folder cannot be deployed with two runtimes."""
        root = self._project(
            tmp_path,
            {
                "custom": {
                    "endpoint": {"sourceDir": "lambda/custom"},
                    "regions": {"NA": {"endpoint": {"sourceDir": "lambda/custom"}}},
                }
            },
            [
                {"alexaUsage": ["custom/default"], "runtime": "nodejs10.x"},
                {"alexaUsage": ["custom/NA"], "runtime": "python3.8"},
            ],
        )
        with pytest.raises(UpgradeError, match="conflicting runtime"):
            extract_upgrade_information(root, "default")

    def test_source_dir_escaping_project_raises(self, tmp_path):
        root = self._project(
            tmp_path,
            {"custom": {"endpoint": {"sourceDir": "../elsewhere"}}},
            [],
        )
        with pytest.raises(UpgradeError, match="Invalid sourceDir"):
            extract_upgrade_information(root, "default")

    def test_two_code_folders_for_one_region_raise(self, tmp_path):
        """Failure: a region can only point at one code folder in the v2 config."""
        root = self._project(
            tmp_path,
            {
                "custom": {"endpoint": {"sourceDir": "lambda/custom", "uri": CUSTOM_ARN}},
                "smartHome": {"endpoint": {"sourceDir": "lambda/smarthome", "uri": EU_ARN}},
            },
            [
                {"alexaUsage": ["custom/default"], "arn": CUSTOM_ARN, "runtime": "nodejs10.x", "handler": "index.handler"},
                {"alexaUsage": ["smartHome/default"], "arn": EU_ARN, "runtime": "python3.8", "handler": "main.handler"},
            ],
        )
        with pytest.raises(
            UpgradeError, match='Region default is served by code folders "lambda/custom" and "lambda/smarthome"'
        ):
            extract_upgrade_information(root, "default")
        assert not (root / "legacy").exists()

    def test_different_regions_may_use_different_folders(self, tmp_path):
        """Happy: default and EU may each have their own code folder."""
        root = self._project(
            tmp_path,
            {
                "custom": {
                    "endpoint": {"sourceDir": "lambda/custom", "uri": CUSTOM_ARN},
                    "regions": {"EU": {"endpoint": {"sourceDir": "lambda/custom-eu", "uri": EU_ARN}}},
                }
            },
            [],
        )
        info = extract_upgrade_information(root, "default")
        assert sorted(info.lambda_resources) == ["lambda/custom", "lambda/custom-eu"]
