"""
Shared test fixtures and configuration for awx tests.

This module provides common fixtures used across all test types:
- A clean AWS environment (no ambient credentials, profile or region)
- Temporary ~/.aws config and credentials files
- A fake `aws` executable that records its arguments and environment
"""

import pytest

from awx.environment import AmbientEnvironment
from awx.settings import Settings
from tests.fixtures.sample_configs import FAKE_AWS_SCRIPT, SAMPLE_CONFIG, SAMPLE_CREDENTIALS
from tests.utils import FakeAws, write_executable

AWS_ENV_VARS = (
    "AWS_PROFILE",
    "AWS_DEFAULT_PROFILE",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AWS_CONFIG_FILE",
    "AWS_SHARED_CREDENTIALS_FILE",
    "AWX_AWS_BINARY",
)


@pytest.fixture(autouse=True)
def clean_aws_env(monkeypatch):
    """Remove ambient AWS variables so tests never touch real credentials."""
    for name in AWS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def aws_files(tmp_path, monkeypatch):
    """Write sample config/credentials files and point awx at them."""
    aws_dir = tmp_path / ".aws"
    aws_dir.mkdir()
    config_path = aws_dir / "config"
    credentials_path = aws_dir / "credentials"
    config_path.write_text(SAMPLE_CONFIG)
    credentials_path.write_text(SAMPLE_CREDENTIALS)
    monkeypatch.setenv("AWS_CONFIG_FILE", str(config_path))
    monkeypatch.setenv("AWS_SHARED_CREDENTIALS_FILE", str(credentials_path))
    return config_path, credentials_path


@pytest.fixture
def fake_aws(tmp_path, monkeypatch):
    """Install the fake aws executable and point awx at it."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    aws_path = write_executable(bin_dir / "aws", FAKE_AWS_SCRIPT)
    log_path = tmp_path / "aws-calls.jsonl"
    monkeypatch.setenv("AWX_AWS_BINARY", str(aws_path))
    monkeypatch.setenv("AWX_FAKE_LOG", str(log_path))
    return FakeAws(aws_path, log_path)


@pytest.fixture
def fake_settings(fake_aws, tmp_path):
    """Settings that use the fake aws executable and short timeouts."""
    return Settings(
        config_path=tmp_path / "config",
        credentials_path=tmp_path / "credentials",
        aws_binary=str(fake_aws.path),
        identity_timeout=5.0,
        sts_timeout=5.0,
    )


@pytest.fixture
def ambient(fake_aws):
    """Snapshot of the cleaned process environment, including the fake aws log path."""
    return AmbientEnvironment.from_os()
