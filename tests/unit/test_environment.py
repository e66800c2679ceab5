"""Unit tests for environment module."""

import os

import pytest

from awx.environment import AmbientEnvironment


class TestAmbientEnvironment:
    """Tests for AmbientEnvironment."""

    def test_snapshot_is_independent_of_os_environ(self, monkeypatch):
        monkeypatch.setenv("AWS_PROFILE", "before")
        ambient = AmbientEnvironment.from_os()
        monkeypatch.setenv("AWS_PROFILE", "after")
        assert ambient["AWS_PROFILE"] == "before"

    def test_read_only(self):
        ambient = AmbientEnvironment({"A": "1"})
        with pytest.raises(TypeError):
            ambient["A"] = "2"

    def test_has_nonempty(self):
        ambient = AmbientEnvironment({"SET": "x", "EMPTY": ""})
        assert ambient.has_nonempty("SET")
        assert not ambient.has_nonempty("EMPTY")
        assert not ambient.has_nonempty("MISSING")

    def test_has_region_counts_empty_values(self):
        assert AmbientEnvironment({"AWS_REGION": ""}).has_region()
        assert AmbientEnvironment({"AWS_DEFAULT_REGION": ""}).has_region()
        assert not AmbientEnvironment().has_region()

    def test_merged_returns_new_dict(self):
        ambient = AmbientEnvironment({"AWS_PROFILE": "dev", "PATH": "/bin"})

        env = ambient.merged({"AWS_ACCESS_KEY_ID": "K"}, remove=("AWS_PROFILE",))

        assert env == {"PATH": "/bin", "AWS_ACCESS_KEY_ID": "K"}
        assert dict(ambient) == {"AWS_PROFILE": "dev", "PATH": "/bin"}

    def test_overlay_wins_over_snapshot(self):
        env = AmbientEnvironment({"AWS_PROFILE": "dev"}).merged({"AWS_PROFILE": "prod"})
        assert env["AWS_PROFILE"] == "prod"

    def test_merged_never_touches_os_environ(self, monkeypatch):
        monkeypatch.delenv("AWX_TEST_MARKER", raising=False)
        AmbientEnvironment.from_os().merged({"AWX_TEST_MARKER": "1"})
        assert "AWX_TEST_MARKER" not in os.environ
