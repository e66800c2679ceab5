"""Immutable snapshot of the process environment.

awx never mutates os.environ. The environment is captured once at startup
and passed explicitly to the components that read it; child processes get
the snapshot merged with an explicit overlay.
"""

import os
from collections.abc import Iterator, Mapping
from types import MappingProxyType

PROFILE_ENV = "AWS_PROFILE"
DEFAULT_PROFILE_ENV = "AWS_DEFAULT_PROFILE"
REGION_ENV = "AWS_REGION"
DEFAULT_REGION_ENV = "AWS_DEFAULT_REGION"


class AmbientEnvironment(Mapping[str, str]):
    """Read-only view of environment variables."""

    def __init__(self, variables: Mapping[str, str] | None = None):
        self._vars = MappingProxyType(dict(variables or {}))

    @classmethod
    def from_os(cls) -> "AmbientEnvironment":
        return cls(os.environ)

    def __getitem__(self, key: str) -> str:
        return self._vars[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._vars)

    def __len__(self) -> int:
        return len(self._vars)

    def has_nonempty(self, key: str) -> bool:
        return bool(self._vars.get(key))

    def has_region(self) -> bool:
        """True if either region variable is defined, even if empty."""
        return REGION_ENV in self._vars or DEFAULT_REGION_ENV in self._vars

    def merged(
        self, overlay: Mapping[str, str], remove: tuple[str, ...] = ()
    ) -> dict[str, str]:
        """Return a new dict: this snapshot minus `remove`, updated with `overlay`."""
        env = {k: v for k, v in self._vars.items() if k not in remove}
        env.update(overlay)
        return env


__all__ = [
    "DEFAULT_PROFILE_ENV",
    "DEFAULT_REGION_ENV",
    "PROFILE_ENV",
    "REGION_ENV",
    "AmbientEnvironment",
]
