"""AWS identity operations through the aws CLI.

Every operation spawns the aws CLI, waits at most a fixed timeout, and parses
its JSON output. No AWS protocol work happens in-process.

Operations:
- check_identity: sts get-caller-identity, success/failure only (5s)
- get_account_id: sts get-caller-identity, returns Account (5s)
- get_session_token: sts get-session-token with an MFA code (30s)
- assume_role: sts assume-role via a named profile or explicit credentials (30s)
- sso_login: foreground aws sso login (no timeout, interactive)

The resolver depends on the IdentityService protocol rather than on
AwsCliIdentityService so tests can substitute a fake.
"""

import asyncio
import contextlib
import json
import logging
import subprocess
from dataclasses import dataclass
from typing import Protocol

from awx.credentials import Credential
from awx.environment import DEFAULT_PROFILE_ENV, PROFILE_ENV, AmbientEnvironment
from awx.errors import DelegateSpawnError, ExternalServiceError, ExternalServiceTimeoutError
from awx.log_sanitizer import LogSanitizer
from awx.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileAuth:
    """Authenticate an STS call as a named profile (--profile NAME)."""

    profile: str


@dataclass(frozen=True)
class CredentialOverlayAuth:
    """Authenticate an STS call with explicit credentials in its environment.

    Any ambient profile selector is dropped so the aws CLI cannot pick up a
    different identity.
    """

    credential: Credential


AuthContext = ProfileAuth | CredentialOverlayAuth


class IdentityService(Protocol):
    """Identity operations the resolver needs."""

    async def check_identity(self, profile: str) -> bool: ...

    async def get_account_id(self, profile: str) -> str: ...

    async def get_session_token(self, profile: str, mfa_serial: str, code: str) -> Credential: ...

    async def assume_role(
        self, role_arn: str, session_name: str, auth: AuthContext
    ) -> Credential: ...

    async def sso_login(self, profile: str) -> int: ...


class AwsCliIdentityService:
    """IdentityService backed by the aws CLI."""

    def __init__(self, settings: Settings, ambient: AmbientEnvironment):
        self.settings = settings
        self.ambient = ambient

    async def ensure_available(self) -> None:
        """Check that the aws CLI can be run.

        Raises:
            DelegateSpawnError: If aws is missing or `aws --version` fails
        """
        binary = self.settings.aws_binary
        try:
            result = await self._run(["--version"], timeout=self.settings.sts_timeout)
        except ExternalServiceError as e:
            raise DelegateSpawnError(
                f"{binary} binary not found. Please install AWS CLI v2 and ensure "
                f"'{binary}' is on PATH"
            ) from e
        if result.returncode != 0:
            raise DelegateSpawnError(f"{binary} binary not found or returned non-zero --version")
        logger.debug(f"Found aws CLI: {result.stdout.strip()}")

    async def check_identity(self, profile: str) -> bool:
        """Return True if the profile can currently authenticate.

        Raises:
            ExternalServiceTimeoutError: If the call times out
            ExternalServiceError: If the aws CLI cannot be started
        """
        result = await self._run(
            _caller_identity_args(profile),
            timeout=self.settings.identity_timeout,
            description="get-caller-identity",
        )
        return result.returncode == 0

    async def get_account_id(self, profile: str) -> str:
        """Return the account id the profile authenticates as.

        Raises:
            ExternalServiceError: On non-zero exit, timeout, bad JSON or missing Account
        """
        result = await self._run(
            _caller_identity_args(profile),
            timeout=self.settings.identity_timeout,
            description="get-caller-identity",
        )
        _check_returncode(result, "get-caller-identity")
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise ExternalServiceError(
                "Parsing get-caller-identity JSON response failed"
            ) from e
        account = data.get("Account") if isinstance(data, dict) else None
        if not isinstance(account, str) or not account:
            raise ExternalServiceError("Account not found in get-caller-identity response")
        return account

    async def get_session_token(self, profile: str, mfa_serial: str, code: str) -> Credential:
        """Exchange an MFA code for temporary credentials.

        Raises:
            ExternalServiceError: On non-zero exit, timeout or bad JSON
        """
        result = await self._run(
            [
                "sts",
                "get-session-token",
                "--serial-number",
                mfa_serial,
                "--token-code",
                code,
                "--profile",
                profile,
                "--duration-seconds",
                str(self.settings.session_duration),
                "--output",
                "json",
            ],
            timeout=self.settings.sts_timeout,
            description="get-session-token",
        )
        _check_returncode(result, "get-session-token")
        return Credential.from_sts_response(result.stdout, "get-session-token")

    async def assume_role(self, role_arn: str, session_name: str, auth: AuthContext) -> Credential:
        """Assume a role, authenticating with a named profile or explicit credentials.

        Raises:
            ExternalServiceError: On non-zero exit, timeout or bad JSON
        """
        args = [
            "sts",
            "assume-role",
            "--role-arn",
            role_arn,
            "--role-session-name",
            session_name,
            "--duration-seconds",
            str(self.settings.session_duration),
            "--output",
            "json",
        ]
        if isinstance(auth, ProfileAuth):
            args += ["--profile", auth.profile]
            env = self.ambient.merged({})
            operation = "assume-role"
        else:
            env = self.ambient.merged(
                auth.credential.as_env(), remove=(PROFILE_ENV, DEFAULT_PROFILE_ENV)
            )
            operation = "assume-role (env)"

        result = await self._run(
            args, timeout=self.settings.sts_timeout, env=env, description=operation
        )
        _check_returncode(result, operation)
        return Credential.from_sts_response(result.stdout, operation)

    async def sso_login(self, profile: str) -> int:
        """Run `aws sso login` in the foreground and return its exit status.

        Raises:
            ExternalServiceError: If the aws CLI cannot be started
        """
        cmd = [self.settings.aws_binary, "sso", "login", "--profile", profile]
        logger.debug(f"Running: {LogSanitizer.sanitize_command(cmd)}")
        try:
            process = await asyncio.create_subprocess_exec(*cmd, env=self.ambient.merged({}))
        except OSError as e:
            raise ExternalServiceError(f"Failed to run aws sso login: {e}") from e
        return await process.wait()

    async def _run(
        self,
        args: list[str],
        *,
        timeout: float,
        env: dict[str, str] | None = None,
        description: str | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run the aws CLI with captured output and a timeout.

        Raises:
            ExternalServiceTimeoutError: If the call exceeds timeout (child is killed)
            ExternalServiceError: If the process cannot be started
        """
        cmd = [self.settings.aws_binary, *args]
        description = description or " ".join(args[:2])
        logger.debug(f"Running: {LogSanitizer.sanitize_command(cmd)} (timeout={timeout}s)")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env if env is not None else self.ambient.merged({}),
            )
        except OSError as e:
            raise ExternalServiceError(f"Failed to run {cmd[0]} ({description}): {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except TimeoutError as e:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise ExternalServiceTimeoutError(
                f"Timeout after {timeout}s waiting for aws {description}"
            ) from e

        return subprocess.CompletedProcess(
            cmd,
            process.returncode,
            stdout.decode(errors="replace"),
            stderr.decode(errors="replace"),
        )


def _caller_identity_args(profile: str) -> list[str]:
    return ["sts", "get-caller-identity", "--profile", profile, "--output", "json"]


def _check_returncode(result: subprocess.CompletedProcess[str], operation: str) -> None:
    if result.returncode != 0:
        raise ExternalServiceError(
            LogSanitizer.create_safe_error_message(result.stderr.strip(), f"{operation} failed")
        )


__all__ = [
    "AuthContext",
    "AwsCliIdentityService",
    "CredentialOverlayAuth",
    "IdentityService",
    "ProfileAuth",
]
