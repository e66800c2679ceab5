"""Run the aws CLI as a child process with resolved credentials.

Environment precedence for the child, highest first:
1. Resolved temporary credentials (always set when present)
2. Static profile keys, unless the ambient AWS_ACCESS_KEY_ID is non-empty
3. AWS_DEFAULT_REGION from the profile, unless a region variable is set or
   the arguments contain --region
4. AWS_PROFILE set to the profile name, unless the arguments contain --profile

While the child runs, SIGINT (and SIGTERM on POSIX) are forwarded to it and
awx keeps waiting for the child's real exit. A child killed by a signal is
reported with shell conventions: SIGINT 130, SIGTERM 143, otherwise 128+N.
"""

import asyncio
import contextlib
import logging
import os
import signal
from collections.abc import Sequence

from awx.credentials import ACCESS_KEY_ENV, SECRET_KEY_ENV, SESSION_TOKEN_ENV, Credential
from awx.environment import DEFAULT_REGION_ENV, PROFILE_ENV, AmbientEnvironment
from awx.errors import DelegateSpawnError
from awx.log_sanitizer import LogSanitizer
from awx.profiles import Profile

logger = logging.getLogger(__name__)

EXIT_SIGINT = 130
EXIT_SIGTERM = 143


def has_region_flag(args: Sequence[str]) -> bool:
    return any(arg.startswith("--region") for arg in args)


def has_profile_flag(args: Sequence[str]) -> bool:
    return any(arg == "--profile" or arg.startswith("--profile=") for arg in args)


def build_overlay(
    args: Sequence[str],
    credential: Credential | None,
    profile: Profile,
    ambient: AmbientEnvironment,
) -> dict[str, str]:
    """Compute the variables to add to the child environment.

    Args:
        args: Arguments passed to the aws CLI
        credential: Resolved temporary credentials, if any
        profile: Selected profile
        ambient: Snapshot of the current environment

    Returns:
        Variables to set on top of the ambient environment
    """
    overlay: dict[str, str] = {}

    if credential is not None:
        overlay.update(credential.as_env())
    elif profile.is_static and not ambient.has_nonempty(ACCESS_KEY_ENV):
        static = {
            ACCESS_KEY_ENV: profile.aws_access_key_id,
            SECRET_KEY_ENV: profile.aws_secret_access_key,
            SESSION_TOKEN_ENV: profile.aws_session_token,
        }
        overlay.update({k: v for k, v in static.items() if v is not None})

    if profile.region and not ambient.has_region() and not has_region_flag(args):
        overlay[DEFAULT_REGION_ENV] = profile.region

    if not has_profile_flag(args):
        overlay[PROFILE_ENV] = profile.name

    return overlay


def translate_exit_status(returncode: int) -> int:
    """Map an asyncio returncode to a process exit code.

    asyncio reports a child killed by signal N as -N.
    """
    if returncode >= 0:
        return returncode
    signum = -returncode
    if signum == signal.SIGINT:
        return EXIT_SIGINT
    if signum == signal.SIGTERM:
        return EXIT_SIGTERM
    return 128 + signum


def forwarded_signals() -> list[signal.Signals]:
    if os.name == "posix":
        return [signal.SIGINT, signal.SIGTERM]
    return [signal.SIGINT]


class DelegateRunner:
    """Spawn the aws CLI with inherited stdio and forward signals to it."""

    def __init__(self, ambient: AmbientEnvironment, aws_binary: str = "aws"):
        self.ambient = ambient
        self.aws_binary = aws_binary

    async def run(
        self,
        args: Sequence[str],
        credential: Credential | None,
        profile: Profile,
    ) -> int:
        """Run `aws <args>` and return the exit code awx should exit with.

        Raises:
            DelegateSpawnError: If the child cannot be started
        """
        overlay = build_overlay(args, credential, profile, self.ambient)
        logger.debug(f"Delegate environment overlay: {LogSanitizer.sanitize_env_vars(overlay)}")

        cmd = [self.aws_binary, *args]
        logger.debug(f"Running: {LogSanitizer.sanitize_command(cmd)}")
        try:
            process = await asyncio.create_subprocess_exec(*cmd, env=self.ambient.merged(overlay))
        except OSError as e:
            raise DelegateSpawnError(f"Failed to spawn aws child command: {e}") from e

        returncode = await self._wait_forwarding_signals(process)
        exit_code = translate_exit_status(returncode)
        logger.debug(f"aws exited with returncode {returncode} -> exit code {exit_code}")
        return exit_code

    async def _wait_forwarding_signals(self, process: asyncio.subprocess.Process) -> int:
        """Wait for the child, forwarding any SIGINT/SIGTERM received meanwhile."""
        loop = asyncio.get_running_loop()
        received: asyncio.Queue[signal.Signals] = asyncio.Queue()
        installed = []
        for signum in forwarded_signals():
            try:
                loop.add_signal_handler(signum, received.put_nowait, signum)
            except (NotImplementedError, RuntimeError, ValueError) as e:
                logger.debug(f"Cannot intercept {signum.name}: {e}")
                continue
            installed.append(signum)

        wait_task = asyncio.ensure_future(process.wait())
        try:
            while True:
                signal_task = asyncio.ensure_future(received.get())
                done, _ = await asyncio.wait(
                    {wait_task, signal_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if wait_task in done:
                    signal_task.cancel()
                    return wait_task.result()

                signum = signal_task.result()
                logger.debug(f"Forwarding {signum.name} to aws (pid {process.pid})")
                with contextlib.suppress(ProcessLookupError):
                    process.send_signal(signum)
        finally:
            for signum in installed:
                loop.remove_signal_handler(signum)


__all__ = [
    "DelegateRunner",
    "build_overlay",
    "forwarded_signals",
    "has_profile_flag",
    "has_region_flag",
    "translate_exit_status",
]
