"""Terminal interaction: MFA code prompt, profile picker and profile table.

The resolver only sees the PromptSource protocol, so tests can feed codes
without a terminal.
"""

import logging
from typing import Protocol

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from awx.profiles import ProfileStore

logger = logging.getLogger(__name__)


class PromptSource(Protocol):
    """Source of interactive MFA codes."""

    def ask_mfa_code(self, mfa_serial: str) -> str: ...


class ClickPromptSource:
    """Read MFA codes from the terminal with hidden input."""

    def ask_mfa_code(self, mfa_serial: str) -> str:
        return click.prompt(
            f"Enter MFA code (6 digits) for {mfa_serial}",
            hide_input=True,
            err=True,
        )


def _profile_table(store: ProfileStore, numbered: bool) -> Table:
    table = Table(show_header=True, header_style="bold")
    if numbered:
        table.add_column("#", justify="right", style="dim")
    table.add_column("Profile", style="bold")
    table.add_column("Kind")
    table.add_column("Region", style="cyan")

    for index, name in enumerate(store.names(), start=1):
        profile = store[name]
        badges = escape("".join(f"[{badge}]" for badge in profile.badges))
        row = [escape(name), badges, profile.region or "-"]
        if numbered:
            row.insert(0, str(index))
        table.add_row(*row)
    return table


def print_profiles(store: ProfileStore, console: Console | None = None) -> None:
    """Print discovered profiles with their badges (for --config)."""
    console = console or Console()
    console.print("Discovered profiles:")
    console.print(_profile_table(store, numbered=False))


def select_profile(store: ProfileStore, console: Console | None = None) -> str:
    """Let the user pick a profile by number.

    Returns:
        The selected profile name
    """
    console = console or Console(stderr=True)
    names = store.names()
    console.print(_profile_table(store, numbered=True))
    choice = click.prompt(
        "Select profile",
        type=click.IntRange(1, len(names)),
        default=1,
        err=True,
    )
    selected = names[choice - 1]
    logger.debug(f"Selected profile: {selected}")
    return selected


__all__ = [
    "ClickPromptSource",
    "PromptSource",
    "print_profiles",
    "select_profile",
]
