"""Credential resolution for AWS profiles.

Given a profile and the profile store, the resolver decides how credentials
are obtained and returns either temporary credentials to inject or
NoInjectionNeeded.

Resolution order:
1. Role profile: classify its source profile (one hop only)
   - source is static + MFA: MFA session token, then assume-role with those
     credentials as an explicit environment overlay
   - source is SSO or static: assume-role with --profile <source>
   - source is itself a role: UnsupportedChainError
   - anything else: UnsupportedSourceAuthError
2. Static profile with mfa_serial: MFA session token
3. Anything else: NoInjectionNeeded (the aws CLI reads SSO caches and static
   keys itself; static keys are injected later by the delegate runner)

SSO profiles are checked for a live session before resolution
(ensure_sso_session). In unattended mode a missing session is an
SsoLoginRequiredError; interactively, aws sso login is run.

The resolver never exits the process. Terminal conditions are raised as
typed errors (MfaExhaustedError, SsoLoginRequiredError) carrying their exit
code, and the CLI performs the exit.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import click

from awx.credentials import Credential
from awx.errors import (
    ExternalServiceError,
    MfaAccountMismatchError,
    MfaCodeFormatError,
    MfaExhaustedError,
    SourceProfileNotFoundError,
    SsoLoginRequiredError,
    UnsupportedChainError,
    UnsupportedSourceAuthError,
)
from awx.identity_service import (
    AuthContext,
    CredentialOverlayAuth,
    IdentityService,
    ProfileAuth,
)
from awx.log_sanitizer import LogSanitizer
from awx.profiles import Profile, ProfileKind, ProfileStore
from awx.prompts import PromptSource
from awx.settings import MFA_MAX_ATTEMPTS

logger = logging.getLogger(__name__)

MFA_CODE_LENGTH = 6
SESSION_NAME_PREFIX = "awx"


@dataclass(frozen=True)
class NoInjectionNeeded:
    """The aws CLI can authenticate the profile without injected credentials."""


@dataclass(frozen=True)
class ResolvedCredentials:
    """Temporary credentials to inject into the delegate environment."""

    credential: Credential


Outcome = NoInjectionNeeded | ResolvedCredentials


def extract_account_from_arn(arn: str) -> str | None:
    """Return the account id field of an ARN, if present.

    ARN format is arn:partition:service:region:account-id:resource, so the
    account is the fifth colon-delimited field.

    Examples:
        >>> extract_account_from_arn("arn:aws:iam::111111111111:mfa/test-user")
        '111111111111'
        >>> extract_account_from_arn("arn:aws:iam") is None
        True
    """
    parts = arn.split(":")
    if len(parts) >= 5 and parts[4]:
        return parts[4]
    return None


def validate_mfa_code(code: str) -> str:
    """Return the trimmed code if it is exactly six ASCII digits.

    Raises:
        MfaCodeFormatError: If the code has the wrong length or characters
    """
    code = code.strip()
    if len(code) != MFA_CODE_LENGTH or not (code.isascii() and code.isdigit()):
        raise MfaCodeFormatError("Invalid code format")
    return code


def sso_login_command(profile_name: str) -> str:
    return f"aws sso login --profile {profile_name}"


class CredentialResolver:
    """Decide and execute the credential strategy for a profile.

    Args:
        identity: Identity operations (usually AwsCliIdentityService)
        prompts: Source of MFA codes
        interactive: False in unattended mode (no prompts, no forced login)
        mfa_attempts: Number of MFA attempts before MfaExhaustedError
        clock: Wall-clock source for role session names
    """

    def __init__(
        self,
        identity: IdentityService,
        prompts: PromptSource,
        *,
        interactive: bool = True,
        mfa_attempts: int = MFA_MAX_ATTEMPTS,
        clock: Callable[[], float] = time.time,
    ):
        self.identity = identity
        self.prompts = prompts
        self.interactive = interactive
        self.mfa_attempts = mfa_attempts
        self.clock = clock

    def session_name(self) -> str:
        """Role session name unique per invocation, e.g. awx-1760659200."""
        return f"{SESSION_NAME_PREFIX}-{int(self.clock())}"

    async def resolve(self, profile: Profile, store: ProfileStore) -> Outcome:
        """Resolve credentials for a profile.

        Raises:
            ProfileError: Missing source profile or unsupported chain
            MfaError: Account mismatch or MFA attempts exhausted
            ExternalServiceError: assume-role failed
        """
        kinds = profile.kinds
        if ProfileKind.ROLE in kinds:
            return await self._resolve_role(profile, store)

        if ProfileKind.STATIC_WITH_MFA in kinds:
            credential = await self.get_session_token_interactive(
                profile.name, profile.mfa_serial
            )
            return ResolvedCredentials(credential)

        logger.debug(f"No credential injection needed for profile '{profile.name}'")
        return NoInjectionNeeded()

    async def _resolve_role(self, profile: Profile, store: ProfileStore) -> Outcome:
        source_name = profile.source_profile
        if not source_name:
            raise SourceProfileNotFoundError(
                f"source_profile missing for role profile '{profile.name}'"
            )
        source = store.get(source_name)
        if source is None:
            raise SourceProfileNotFoundError(f"source_profile '{source_name}' not found")

        source_kinds = source.kinds
        if ProfileKind.ROLE in source_kinds:
            raise UnsupportedChainError(
                f"source_profile '{source_name}' of '{profile.name}' is itself a role. "
                f"Only one level of role assumption is supported."
            )

        auth: AuthContext
        if ProfileKind.STATIC_WITH_MFA in source_kinds:
            base = await self.get_session_token_interactive(source.name, source.mfa_serial)
            auth = CredentialOverlayAuth(base)
        elif source_kinds & {ProfileKind.SSO, ProfileKind.STATIC_ONLY}:
            auth = ProfileAuth(source.name)
        else:
            raise UnsupportedSourceAuthError(
                f"Unsupported source_profile auth method for '{source_name}'. "
                f"Supported: SSO, static keys, or static keys with MFA."
            )

        session_name = self.session_name()
        logger.debug(
            f"Assuming {profile.role_arn} as {session_name} via "
            f"{'MFA session of ' if isinstance(auth, CredentialOverlayAuth) else ''}"
            f"'{source_name}'"
        )
        credential = await self.identity.assume_role(profile.role_arn, session_name, auth)
        return ResolvedCredentials(credential)

    async def get_session_token_interactive(self, profile_name: str, mfa_serial: str) -> Credential:
        """Prompt for MFA codes and exchange one for a session token.

        The MFA device's account is checked against the profile's account
        first; a mismatch fails before any prompt. If the account cannot be
        determined, prompting continues with a warning.

        Raises:
            MfaAccountMismatchError: MFA serial belongs to another account
            MfaExhaustedError: No attempt succeeded
        """
        await self._verify_mfa_account(profile_name, mfa_serial)

        for attempt in range(1, self.mfa_attempts + 1):
            raw_code = self.prompts.ask_mfa_code(mfa_serial)
            try:
                code = validate_mfa_code(raw_code)
            except MfaCodeFormatError as e:
                logger.warning(str(e))
                continue

            try:
                return await self.identity.get_session_token(profile_name, mfa_serial, code)
            except ExternalServiceError as e:
                logger.warning(
                    LogSanitizer.create_safe_error_message(e, f"MFA attempt {attempt} failed")
                )

        raise MfaExhaustedError(
            f"MFA failed after {self.mfa_attempts} attempts for profile '{profile_name}'"
        )

    async def _verify_mfa_account(self, profile_name: str, mfa_serial: str) -> None:
        mfa_account = extract_account_from_arn(mfa_serial)
        if mfa_account is None:
            return

        try:
            profile_account = await self.identity.get_account_id(profile_name)
        except ExternalServiceError as e:
            logger.warning(f"Could not determine profile account: {e}")
            return

        if profile_account != mfa_account:
            raise MfaAccountMismatchError(
                f"MFA serial account ({mfa_account}) does not match profile account "
                f"({profile_account}). Update 'mfa_serial' in profile '{profile_name}', "
                f"or use credentials for the correct account."
            )

    async def ensure_sso_session(self, profile: Profile) -> None:
        """Make sure an SSO profile has a live session.

        Unknown results (timeout, spawn failure) do not force a login in
        interactive mode.

        Raises:
            SsoLoginRequiredError: Unattended mode and the session is not
                known to be valid
            ExternalServiceError: aws sso login exited non-zero
        """
        if ProfileKind.SSO not in profile.kinds:
            return

        remediation = (
            f'SSO login required for profile "{profile.name}". '
            f"Run: {sso_login_command(profile.name)}"
        )

        try:
            logged_in = await self.identity.check_identity(profile.name)
        except ExternalServiceError as e:
            logger.debug(f"SSO session check inconclusive: {e}")
            if not self.interactive:
                raise SsoLoginRequiredError(remediation) from e
            logger.warning(
                f"Could not verify SSO session for '{profile.name}' ({e}); continuing"
            )
            return

        if logged_in:
            logger.debug(f"SSO session for '{profile.name}' is valid")
            return

        if not self.interactive:
            raise SsoLoginRequiredError(remediation)

        click.echo(
            f"SSO token is not valid. Running: {sso_login_command(profile.name)}", err=True
        )
        status = await self.identity.sso_login(profile.name)
        if status != 0:
            raise ExternalServiceError(f"aws sso login failed (exit status {status})")
        click.echo("SSO login completed.", err=True)


__all__ = [
    "CredentialResolver",
    "NoInjectionNeeded",
    "Outcome",
    "ResolvedCredentials",
    "extract_account_from_arn",
    "sso_login_command",
    "validate_mfa_code",
]
