"""
Shared constants for the ask CLI upgrade tooling.

File names, schema versions, deployer types and environment variable names
used across the v1 -> v2 project upgrade.
"""

# v1 project layout
V1_HIDDEN_CONFIG = ".ask/config"
V1_SKILL_JSON = "skill.json"
V1_HOSTED_LAMBDA_DIR = "lambda"
V1_HOSTED_LAMBDA_CUSTOM_DIR = "lambda/custom"

# v2 project layout
ASK_RESOURCES_JSON_CONFIG = "ask-resources.json"
ASK_STATES_JSON_CONFIG = ".ask/ask-states.json"
SKILL_PACKAGE_DIR = "skill-package"
SKILL_PACKAGE_SRC = "./skill-package"
HOSTED_CODE_DIR = "lambda"
HOSTED_CODE_SRC = "./lambda"
LEGACY_DIR = "legacy"
GIT_DIR = ".git"
GITIGNORE = ".gitignore"

RESOURCES_VERSION = "2020-03-31"
STATES_VERSION = "2020-03-31"

# Deployer types written into skillInfrastructure
LAMBDA_DEPLOYER = "@ask-cli/lambda-deployer"
HOSTED_SKILL_DEPLOYER = "@ask-cli/hosted-skill-deployer"

# Skill stages
STAGE_DEVELOPMENT = "development"

# Endpoint regions. "default" covers every region without an override.
DEFAULT_REGION = "default"
REGIONS = ["default", "NA", "EU", "FE"]

# Hosted skill branch used for development pushes
HOSTED_DEV_BRANCH = "dev"

# CLI config
CLI_CONFIG_DIR = ".ask"
CLI_CONFIG_FILE = "cli_config"
ENVIRONMENT_PROFILE = "__ENVIRONMENT_ASK_PROFILE__"
DEFAULT_PROFILE = "default"

# Environment variables
ENV_DEFAULT_PROFILE = "ASK_DEFAULT_PROFILE"
ENV_ACCESS_TOKEN = "ASK_ACCESS_TOKEN"
ENV_REFRESH_TOKEN = "ASK_REFRESH_TOKEN"
ENV_VENDOR_ID = "ASK_VENDOR_ID"
ENV_LWA_CLIENT_ID = "ASK_LWA_CLIENT_ID"
ENV_LWA_CLIENT_CONFIRMATION = "ASK_LWA_CLIENT_CONFIRMATION"
ENV_LWA_TOKEN_HOST = "ASK_LWA_TOKEN_HOST"
ENV_SMAPI_BASE_URL = "ASK_SMAPI_SERVER_BASE_URL"

DEFAULT_LWA_TOKEN_HOST = "https://api.amazon.com"
LWA_TOKEN_PATH = "/auth/o2/token"
DEFAULT_SMAPI_BASE_URL = "https://api.amazonalexa.com"

# Export polling
EXPORT_POLL_MAX_RETRIES = 30
EXPORT_POLL_INTERVAL_SECONDS = 1.0
HTTP_TIMEOUT_SECONDS = 60.0

USER_AGENT = "ask-upgrade"
