"""Runtime settings for awx.

Settings are resolved once at startup from the environment and are
immutable afterwards. Defaults match the aws CLI conventions:

- Profile config: ~/.aws/config (override: AWS_CONFIG_FILE)
- Static credentials: ~/.aws/credentials (override: AWS_SHARED_CREDENTIALS_FILE)
- aws binary: "aws" on PATH (override: AWX_AWS_BINARY)
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from awx.errors import ConfigError

logger = logging.getLogger(__name__)

IDENTITY_TIMEOUT_SECONDS = 5.0
STS_TIMEOUT_SECONDS = 30.0
SESSION_DURATION_SECONDS = 3600
MFA_MAX_ATTEMPTS = 3


def aws_dir() -> Path:
    """Return the per-user ~/.aws directory.

    Raises:
        ConfigError: If the home directory cannot be determined
    """
    try:
        home = Path.home()
    except (RuntimeError, KeyError) as e:
        raise ConfigError("Could not determine home directory") from e
    return home / ".aws"


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings.

    Attributes:
        config_path: Path to the profile config file
        credentials_path: Path to the static credentials file
        aws_binary: Name or path of the aws CLI executable
        identity_timeout: Timeout for sts get-caller-identity calls (seconds)
        sts_timeout: Timeout for get-session-token and assume-role calls (seconds)
        session_duration: Requested lifetime of temporary credentials (seconds)
        mfa_attempts: Number of MFA code attempts before giving up
    """

    config_path: Path
    credentials_path: Path
    aws_binary: str = "aws"
    identity_timeout: float = IDENTITY_TIMEOUT_SECONDS
    sts_timeout: float = STS_TIMEOUT_SECONDS
    session_duration: int = SESSION_DURATION_SECONDS
    mfa_attempts: int = MFA_MAX_ATTEMPTS

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> "Settings":
        """Build settings from an environment mapping.

        Args:
            env: Environment variables (usually an AmbientEnvironment snapshot)

        Returns:
            Settings with file paths and binary resolved

        Raises:
            ConfigError: If a default path is needed and home is undiscoverable
        """
        config_override = env.get("AWS_CONFIG_FILE")
        credentials_override = env.get("AWS_SHARED_CREDENTIALS_FILE")

        base = None
        if not config_override or not credentials_override:
            base = aws_dir()

        config_path = Path(config_override).expanduser() if config_override else base / "config"
        credentials_path = (
            Path(credentials_override).expanduser()
            if credentials_override
            else base / "credentials"
        )

        settings = cls(
            config_path=config_path,
            credentials_path=credentials_path,
            aws_binary=env.get("AWX_AWS_BINARY") or "aws",
        )
        logger.debug(
            f"Settings: config={settings.config_path}, "
            f"credentials={settings.credentials_path}, aws={settings.aws_binary}"
        )
        return settings


__all__ = [
    "IDENTITY_TIMEOUT_SECONDS",
    "MFA_MAX_ATTEMPTS",
    "SESSION_DURATION_SECONDS",
    "STS_TIMEOUT_SECONDS",
    "Settings",
    "aws_dir",
]
