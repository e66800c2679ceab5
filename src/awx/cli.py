"""awx command line interface.

Resolves credentials for an AWS profile and runs an aws CLI command with
them injected:

    $ awx -p prod -- s3 ls
    $ awx -n -p ci-role -- sts get-caller-identity

Exit codes:
    0    success (or the aws command's own exit code)
    1    setup or resolution error
    2    SSO login required in --no-interactive mode
    3    MFA attempts exhausted
    130  aws interrupted by SIGINT
    143  aws terminated by SIGTERM
"""

import asyncio
import logging
import sys
from collections.abc import Sequence

import click

from awx import __version__
from awx.delegate import DelegateRunner
from awx.environment import PROFILE_ENV, AmbientEnvironment
from awx.errors import AwxError, ConfigError, ProfileNotFoundError
from awx.identity_service import AwsCliIdentityService
from awx.profiles import DEFAULT_PROFILE, ProfileStore
from awx.prompts import ClickPromptSource, print_profiles, select_profile
from awx.resolver import CredentialResolver, ResolvedCredentials
from awx.settings import Settings

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(message)s")


def choose_profile_name(
    store: ProfileStore,
    ambient: AmbientEnvironment,
    profile: str | None,
    interactive: bool,
) -> str:
    """Pick the profile: --profile, then AWS_PROFILE/default when unattended, else the picker."""
    if profile:
        return profile
    if not interactive:
        return ambient.get(PROFILE_ENV) or DEFAULT_PROFILE
    return select_profile(store)


async def run(
    aws_args: Sequence[str],
    *,
    profile: str | None = None,
    show_config: bool = False,
    clear_cache: str | None = None,
    interactive: bool = True,
) -> int:
    """Resolve credentials and run the aws command.

    Returns:
        Exit code for the awx process

    Raises:
        AwxError: Any setup, resolution or spawn failure
    """
    ambient = AmbientEnvironment.from_os()
    settings = Settings.from_env(ambient)
    identity = AwsCliIdentityService(settings, ambient)

    await identity.ensure_available()

    store = ProfileStore.from_files(settings.config_path, settings.credentials_path)
    if not store:
        raise ConfigError(
            f"No AWS profiles found in {settings.config_path} or {settings.credentials_path}"
        )

    if show_config:
        print_profiles(store)
        return 0

    if clear_cache is not None:
        click.echo(f"Clearing cache for: {clear_cache} (no-op: awx does not cache credentials)")
        return 0

    name = choose_profile_name(store, ambient, profile, interactive)
    selected = store.get(name)
    if selected is None:
        raise ProfileNotFoundError(f"Profile '{name}' not found")
    logger.debug(f"Using profile {selected!r}")

    resolver = CredentialResolver(
        identity,
        ClickPromptSource(),
        interactive=interactive,
        mfa_attempts=settings.mfa_attempts,
    )
    await resolver.ensure_sso_session(selected)
    outcome = await resolver.resolve(selected, store)

    if not aws_args:
        click.echo("No AWS command specified. Use -- to pass AWS CLI arguments.")
        return 0

    credential = outcome.credential if isinstance(outcome, ResolvedCredentials) else None
    runner = DelegateRunner(ambient, settings.aws_binary)
    return await runner.run(list(aws_args), credential, selected)


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
        "help_option_names": ["--help", "-h"],
    },
)
@click.option("-p", "--profile", type=str, help="Profile to use (skips the picker)")
@click.option(
    "-c", "--config", "show_config", is_flag=True, help="Show discovered profiles and exit"
)
@click.option("--clear-cache", metavar="NAME|all", help="Clear cached credentials (no-op)")
@click.option(
    "-n",
    "--no-interactive",
    is_flag=True,
    help="Never prompt; exit 2 if SSO login is required",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.argument("aws_args", nargs=-1, type=click.UNPROCESSED)
@click.version_option(version=__version__, prog_name="awx")
def main(
    profile: str | None,
    show_config: bool,
    clear_cache: str | None,
    no_interactive: bool,
    verbose: bool,
    aws_args: tuple[str, ...],
) -> None:
    """Run an aws CLI command with credentials resolved for a profile.

    Handles SSO login checks, MFA session tokens and role assumption through
    a source profile, then runs `aws AWS_ARGS...` with the credentials in its
    environment.

    \b
    EXAMPLES:
        # Pick a profile interactively
        $ awx -- s3 ls

        # Use a profile directly
        $ awx -p prod -- ec2 describe-instances

        # CI: never prompt
        $ awx -n -p ci -- sts get-caller-identity

        # List profiles
        $ awx -c
    """
    _configure_logging(verbose)

    try:
        exit_code = asyncio.run(
            run(
                aws_args,
                profile=profile,
                show_config=show_config,
                clear_cache=clear_cache,
                interactive=not no_interactive,
            )
        )
    except AwxError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(e.exit_code)
    except (click.exceptions.Abort, click.exceptions.ClickException):
        raise
    except Exception as e:
        logger.exception("Unexpected error")
        click.echo(click.style(f"Unexpected error: {e}", fg="red"), err=True)
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
