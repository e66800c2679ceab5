"""
Test utilities for awx tests.

This module provides helpers for installing fake executables and reading
back what the fake aws CLI recorded.
"""

import json
import stat
from pathlib import Path


def write_executable(path: Path, content: str) -> Path:
    """Write an executable script and return its path."""
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


class FakeAws:
    """Handle on the fake aws executable and its invocation log."""

    def __init__(self, path: Path, log_path: Path):
        self.path = path
        self.log_path = log_path

    @property
    def calls(self) -> list[dict[str, str]]:
        """One dict per invocation: "args" plus the recorded AWS_* variables."""
        if not self.log_path.exists():
            return []
        return [json.loads(line) for line in self.log_path.read_text().splitlines() if line]

    def calls_for(self, prefix: str) -> list[dict[str, str]]:
        return [call for call in self.calls if call["args"].startswith(prefix)]
