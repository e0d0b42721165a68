"""
Configuration loading and validation for the deployment pipeline.

The deployment is driven by a small ``.env`` style file:

    AWS_REGION=us-west-2
    DOMAIN_NAME=example-site.com
    AWS_CLI_PROFILE=default

From it we work out a ``DeploymentContext``: the bucket to deploy to (always
named exactly like the domain, so DNS can point straight at the S3 website
endpoint), the region, and which AWS credentials to use. The context is built
once and handed to every later step.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import dotenv_values

from site_deploy.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# --- Constants ---

CI_INDICATORS: List[str] = ["CI", "GITHUB_ACTIONS"]
BUCKET_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$")
BUCKET_NAME_MIN_LENGTH: int = 3
BUCKET_NAME_MAX_LENGTH: int = 63
DEFAULT_BUILD_SUBDIR: str = "dist"


@dataclass
class ValidationResult:
    """Result of a validation operation."""

    is_valid: bool = True
    errors: List[str] = field(default_factory=list)

    def add_error(self, error: str) -> None:
        self.errors.append(error)
        self.is_valid = False


@dataclass(frozen=True)
class CredentialMode:
    """
    Which AWS credentials every client in this run is built with.

    In CI the runner supplies credentials through the environment, so no
    profile is passed. Everywhere else a named profile from ``~/.aws`` is used.
    """

    profile: Optional[str] = None

    @classmethod
    def select(cls, is_ci: bool, profile: Optional[str]) -> "CredentialMode":
        if is_ci:
            return cls(profile=None)
        return cls(profile=profile)

    @property
    def uses_profile(self) -> bool:
        return self.profile is not None

    def session_kwargs(self) -> Dict[str, str]:
        """Extra keyword arguments for ``boto3.Session``; empty for ambient credentials."""
        if self.uses_profile:
            return {"profile_name": self.profile}
        return {}

    def describe(self) -> str:
        if self.uses_profile:
            return f"profile '{self.profile}'"
        return "ambient CI credentials"


@dataclass(frozen=True)
class DeploymentContext:
    """Everything the pipeline stages need to know, fixed after validation."""

    domain_name: str
    bucket_name: str
    region: str
    credentials: CredentialMode
    app_dir: Path
    build_dir: Path

    @property
    def website_url(self) -> str:
        return f"http://{self.bucket_name}.s3-website-{self.region}.amazonaws.com"


def load_config(path: str, export: bool = True) -> Dict[str, str]:
    """
    Reads ``key=value`` pairs from the config file.

    Comment lines and blank lines are skipped and quotes around values are
    stripped. When ``export`` is set each pair is also copied into
    ``os.environ``, which is how the front-end build picks up its settings.

    Args:
        path (str): Path to the config file.
        export (bool): Whether to copy the values into the process environment.

    Returns:
        Dict[str, str]: The loaded key/value pairs.

    Raises:
        ConfigurationError: If the file does not exist.
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigurationError(f"Config file not found: {config_path}")

    # Keys written without a value come back as None; drop them.
    config: Dict[str, str] = {
        key: value
        for key, value in dotenv_values(config_path, interpolate=False).items()
        if value is not None
    }
    logger.info(f"Loaded {len(config)} settings from {config_path}")

    if export:
        for key, value in config.items():
            os.environ[key] = value
    return config


def is_ci(config: Mapping[str, str], environ: Optional[Mapping[str, str]] = None) -> bool:
    """True when ``CI`` or ``GITHUB_ACTIONS`` is the literal string ``"true"``."""
    environ = os.environ if environ is None else environ
    for name in CI_INDICATORS:
        value = environ.get(name, config.get(name))
        if value == "true":
            return True
    return False


def validate_bucket_name(name: str) -> ValidationResult:
    """
    Checks a bucket name against the S3 naming rules.

    Names must be 3 to 63 characters long, may only contain lowercase letters,
    digits, dots and hyphens, and must start and end with a letter or digit.
    """
    result = ValidationResult()
    if not name:
        result.add_error("Bucket name is empty.")
        return result

    if len(name) < BUCKET_NAME_MIN_LENGTH or len(name) > BUCKET_NAME_MAX_LENGTH:
        result.add_error(
            f"Bucket name '{name}' must be between {BUCKET_NAME_MIN_LENGTH} and "
            f"{BUCKET_NAME_MAX_LENGTH} characters long (got {len(name)})."
        )
    if not BUCKET_NAME_PATTERN.match(name):
        result.add_error(
            f"Bucket name '{name}' may only contain lowercase letters, digits, '.' and '-', "
            "and must start and end with a letter or digit."
        )
    return result


def validate_environment(
    config: Mapping[str, str],
    environ: Optional[Mapping[str, str]] = None,
    app_dir: Optional[str] = None,
) -> DeploymentContext:
    """
    Checks the required variables and builds the deployment context.

    ``AWS_REGION`` and ``DOMAIN_NAME`` are always required. ``AWS_CLI_PROFILE``
    is required only outside CI. Each value is taken from the process
    environment when set there, otherwise from the config file. Every missing
    variable is logged before the error is raised, so one run reports all of
    them.

    Raises:
        ConfigurationError: If any required variable is missing.
    """
    environ = os.environ if environ is None else environ

    def setting(name: str) -> Optional[str]:
        return environ.get(name) or config.get(name)

    ci = is_ci(config, environ)
    required: List[str] = ["AWS_REGION", "DOMAIN_NAME"]
    if not ci:
        required.append("AWS_CLI_PROFILE")

    missing = [name for name in required if not setting(name)]
    for name in missing:
        logger.error(f"Required variable {name} is not set.")
    if missing:
        raise ConfigurationError("Missing required configuration", ", ".join(missing))

    credentials = CredentialMode.select(ci, setting("AWS_CLI_PROFILE"))
    logger.info(f"Using {credentials.describe()}")

    app_path = Path(app_dir or setting("APP_DIR") or ".")
    build_dir = setting("BUILD_DIR")
    build_path = Path(build_dir) if build_dir else app_path / DEFAULT_BUILD_SUBDIR

    domain_name = setting("DOMAIN_NAME")
    return DeploymentContext(
        domain_name=domain_name,
        bucket_name=domain_name,
        region=setting("AWS_REGION"),
        credentials=credentials,
        app_dir=app_path,
        build_dir=build_path,
    )
