"""Exception taxonomy for awx.

Every error that reaches the CLI derives from AwxError and carries the
process exit code the CLI should use. Most errors exit with 1; the two
conditions scripts need to branch on have their own codes:

- SsoLoginRequiredError: 2 (unattended run, SSO token missing or expired)
- MfaExhaustedError: 3 (all MFA attempts failed)
"""


class AwxError(Exception):
    """Base class for all awx errors."""

    exit_code = 1


class ConfigError(AwxError):
    """Raised when the AWS config directory or files cannot be read."""

    pass


class ProfileError(AwxError):
    """Raised when a profile cannot be used for credential resolution."""

    pass


class ProfileNotFoundError(ProfileError):
    """Raised when the selected profile does not exist."""

    pass


class SourceProfileNotFoundError(ProfileError):
    """Raised when a role profile's source_profile is missing or unknown."""

    pass


class UnsupportedChainError(ProfileError):
    """Raised when a role's source profile is itself a role."""

    pass


class UnsupportedSourceAuthError(ProfileError):
    """Raised when a source profile has no usable authentication method."""

    pass


class ExternalServiceError(AwxError):
    """Raised when an aws CLI call fails or returns malformed output."""

    pass


class ExternalServiceTimeoutError(ExternalServiceError):
    """Raised when an aws CLI call does not finish within its timeout."""

    pass


class MfaError(AwxError):
    """Raised when MFA session-token acquisition fails."""

    pass


class MfaCodeFormatError(MfaError):
    """Raised when an MFA code is not exactly six digits."""

    pass


class MfaAccountMismatchError(MfaError):
    """Raised when the MFA device belongs to a different account than the profile."""

    pass


class MfaExhaustedError(MfaError):
    """Raised after the last MFA attempt fails."""

    exit_code = 3


class SsoLoginRequiredError(AwxError):
    """Raised when SSO login is needed but prompting is not allowed."""

    exit_code = 2


class DelegateSpawnError(AwxError):
    """Raised when the aws CLI is missing or cannot be started."""

    pass


__all__ = [
    "AwxError",
    "ConfigError",
    "DelegateSpawnError",
    "ExternalServiceError",
    "ExternalServiceTimeoutError",
    "MfaAccountMismatchError",
    "MfaCodeFormatError",
    "MfaError",
    "MfaExhaustedError",
    "ProfileError",
    "ProfileNotFoundError",
    "SourceProfileNotFoundError",
    "SsoLoginRequiredError",
    "UnsupportedChainError",
    "UnsupportedSourceAuthError",
]
