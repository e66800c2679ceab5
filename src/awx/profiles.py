"""AWS profile loading and classification.

This module reads the two aws CLI sectioned files and merges them into an
immutable table of Profile records:

- config (~/.aws/config): sections "default" or "profile <name>", contributing
  region, SSO, role and MFA fields
- credentials (~/.aws/credentials): sections named by the bare profile name,
  contributing the static key fields

File grammar:
- Blank lines and lines starting with '#' or ';' are ignored
- "[section]" opens a section
- "key = value" assigns a field; key and value are trimmed
- Assignments before any section header belong to "default"

Profile kinds are not exclusive. A profile can hold static keys and an MFA
serial, or be a role whose source is an SSO profile, so classification is a
set of ProfileKind members rather than a single tag.
"""

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, fields, replace
from enum import StrEnum
from pathlib import Path

from awx.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"

# Config sections that describe something other than a profile.
_NON_PROFILE_PREFIXES = ("sso-session ", "services ")

_CONFIG_FIELDS = (
    "region",
    "sso_start_url",
    "sso_region",
    "sso_session",
    "role_arn",
    "source_profile",
    "mfa_serial",
)
_CREDENTIAL_FIELDS = (
    "aws_access_key_id",
    "aws_secret_access_key",
    "aws_session_token",
)


def parse_sections(content: str) -> dict[str, dict[str, str]]:
    """Parse aws-style INI text into {section: {key: value}}.

    Args:
        content: Raw file contents

    Returns:
        Mapping of section name to its key/value pairs. Repeated sections are
        merged, later keys winning.
    """
    sections: dict[str, dict[str, str]] = {}
    current = DEFAULT_PROFILE
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")):
            continue
        if line.startswith("[") and line.endswith("]"):
            current = line[1:-1].strip()
            sections.setdefault(current, {})
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        sections.setdefault(current, {})[key.strip()] = value.strip()
    return sections


class ProfileKind(StrEnum):
    """Authentication kinds a profile can exhibit."""

    SSO = "sso"
    ROLE = "role"
    STATIC_WITH_MFA = "static_mfa"
    STATIC_ONLY = "static"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class Profile:
    """One named AWS profile.

    Every field except name is optional; which ones are set decides how
    credentials for the profile are obtained (see the is_* predicates).
    """

    name: str
    region: str | None = None
    sso_start_url: str | None = None
    sso_region: str | None = None
    sso_session: str | None = None
    role_arn: str | None = None
    source_profile: str | None = None
    mfa_serial: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None

    def __repr__(self) -> str:
        # Keep key material out of logs and tracebacks
        shown = []
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name in ("aws_secret_access_key", "aws_session_token"):
                value = "****"
            shown.append(f"{f.name}={value!r}")
        return f"Profile({', '.join(shown)})"

    @property
    def is_sso(self) -> bool:
        return (
            self.sso_start_url is not None
            or self.sso_region is not None
            or self.sso_session is not None
        )

    @property
    def is_role(self) -> bool:
        return self.role_arn is not None

    @property
    def is_static(self) -> bool:
        return self.aws_access_key_id is not None and self.aws_secret_access_key is not None

    @property
    def requires_mfa(self) -> bool:
        return self.mfa_serial is not None

    @property
    def kinds(self) -> frozenset[ProfileKind]:
        """Every kind this profile exhibits; UNCLASSIFIED only when nothing else applies."""
        kinds = set()
        if self.is_sso:
            kinds.add(ProfileKind.SSO)
        if self.is_role:
            kinds.add(ProfileKind.ROLE)
        if self.is_static:
            kinds.add(
                ProfileKind.STATIC_WITH_MFA if self.requires_mfa else ProfileKind.STATIC_ONLY
            )
        if not kinds:
            kinds.add(ProfileKind.UNCLASSIFIED)
        return frozenset(kinds)

    @property
    def badges(self) -> list[str]:
        """Display badges in a stable order, e.g. ["default", "ROLE", "MFA"]."""
        badges = []
        if self.name == DEFAULT_PROFILE:
            badges.append("default")
        if self.is_sso:
            badges.append("SSO")
        if self.is_role:
            badges.append("ROLE")
        if self.requires_mfa:
            badges.append("MFA")
        if self.is_static:
            badges.append("STATIC")
        return badges


def _config_profile_name(section: str) -> str | None:
    """Map a config section name to a profile name, or None if it is not a profile."""
    if section.startswith("profile "):
        return section[len("profile ") :].strip()
    if section.startswith(_NON_PROFILE_PREFIXES):
        return None
    return section


class ProfileStore(Mapping[str, Profile]):
    """Immutable mapping of profile name to Profile.

    Examples:
        >>> store = ProfileStore.load("[profile dev]\\nregion = us-east-1\\n", None)
        >>> store["dev"].region
        'us-east-1'
    """

    def __init__(self, profiles: Mapping[str, Profile] | None = None):
        self._profiles: dict[str, Profile] = dict(profiles or {})

    def __getitem__(self, name: str) -> Profile:
        return self._profiles[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def __repr__(self) -> str:
        return f"ProfileStore({self.names()!r})"

    def names(self) -> list[str]:
        """Profile names sorted alphabetically, with "default" first."""
        return sorted(self._profiles, key=lambda n: (n != DEFAULT_PROFILE, n))

    @classmethod
    def load(cls, config_content: str | None, credentials_content: str | None) -> "ProfileStore":
        """Merge raw config and credentials contents into a store.

        Either source may be None, which is treated as empty. Fields are merged
        additively: the credentials source only fills static key fields that
        are not already set.

        Args:
            config_content: Contents of the config file
            credentials_content: Contents of the credentials file

        Returns:
            ProfileStore with one entry per distinct profile name
        """
        profiles: dict[str, Profile] = {}

        for section, values in parse_sections(config_content or "").items():
            name = _config_profile_name(section)
            if not name:
                logger.debug(f"Skipping non-profile config section: [{section}]")
                continue
            profile = profiles.get(name) or Profile(name=name)
            updates = {k: values[k] for k in _CONFIG_FIELDS if k in values}
            profiles[name] = replace(profile, **updates)

        for section, values in parse_sections(credentials_content or "").items():
            name = section
            profile = profiles.get(name) or Profile(name=name)
            updates = {
                k: values[k]
                for k in _CREDENTIAL_FIELDS
                if k in values and getattr(profile, k) is None
            }
            profiles[name] = replace(profile, **updates)

        logger.debug(f"Loaded {len(profiles)} profile(s)")
        return cls(profiles)

    @classmethod
    def from_files(cls, config_path: Path, credentials_path: Path) -> "ProfileStore":
        """Read both files from disk and merge them.

        Missing files are treated as empty.

        Raises:
            ConfigError: If a file exists but cannot be read
        """
        return cls.load(_read_optional(config_path), _read_optional(credentials_path))


def _read_optional(path: Path) -> str | None:
    if not path.exists():
        logger.debug(f"{path} not found, treating as empty")
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e


__all__ = [
    "DEFAULT_PROFILE",
    "Profile",
    "ProfileKind",
    "ProfileStore",
    "parse_sections",
]
