"""Tests for agent detection strategies."""

from unittest.mock import MagicMock, patch

import pytest

from query_mcp.install.detection import (
    CommandDetectionStrategy,
    CompositeDetectionStrategy,
    DetectionStrategyFactory,
    DirectoryDetectionStrategy,
    FileDetectionStrategy,
    Platform,
)


class TestDirectoryDetection:
    def test_existing_path(self, tmp_path):
        assert DirectoryDetectionStrategy().detect({"paths": [str(tmp_path)]}) is True

    def test_missing_path(self, tmp_path):
        assert DirectoryDetectionStrategy().detect({"paths": [str(tmp_path / "nope")]}) is False

    def test_relative_to_base_path(self, tmp_path):
        (tmp_path / ".idea").mkdir()
        config = {"paths": [".junie", ".idea"], "base_path": str(tmp_path)}
        assert DirectoryDetectionStrategy().detect(config) is True

    def test_glob(self, tmp_path):
        (tmp_path / "PyCharm 2025.1.app").mkdir()
        assert DirectoryDetectionStrategy().detect({"paths": [str(tmp_path / "PyCharm*.app")]})

    def test_env_var_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AGENT_HOME", str(tmp_path))
        assert DirectoryDetectionStrategy().detect({"paths": ["$AGENT_HOME"]}) is True


class TestCommandDetection:
    def test_exit_zero(self):
        with patch("query_mcp.install.detection.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)
            assert CommandDetectionStrategy().detect({"command": "command -v claude"}) is True
        assert mock_run.call_args.kwargs["timeout"] == 10

    def test_exit_nonzero(self):
        with patch("query_mcp.install.detection.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=1)
            assert CommandDetectionStrategy().detect({"command": "command -v claude"}) is False

    def test_timeout(self):
        import subprocess

        with patch(
            "query_mcp.install.detection.subprocess.run",
            side_effect=subprocess.TimeoutExpired("x", 10),
        ):
            assert CommandDetectionStrategy().detect({"command": "slow"}) is False

    def test_no_command(self):
        assert CommandDetectionStrategy().detect({}) is False


class TestFileDetection:
    def test_file_in_base_path(self, tmp_path):
        (tmp_path / "CLAUDE.md").write_text("")
        config = {"files": ["CLAUDE.md"], "base_path": str(tmp_path)}
        assert FileDetectionStrategy().detect(config) is True

    def test_requires_base_path(self):
        assert FileDetectionStrategy().detect({"files": ["CLAUDE.md"]}) is False


class TestFactory:
    def test_single_strategy(self):
        factory = DetectionStrategyFactory()
        assert isinstance(factory.make_from_config({"paths": ["x"]}), DirectoryDetectionStrategy)
        assert isinstance(factory.make_from_config({"command": "x"}), CommandDetectionStrategy)
        assert isinstance(factory.make_from_config({"files": ["x"]}), FileDetectionStrategy)

    def test_composite(self, tmp_path):
        (tmp_path / "CLAUDE.md").write_text("")
        config = {"paths": [".claude"], "files": ["CLAUDE.md"], "base_path": str(tmp_path)}

        strategy = DetectionStrategyFactory().make_from_config(config)

        assert isinstance(strategy, CompositeDetectionStrategy)
        assert len(strategy.strategies) == 2
        assert strategy.detect(config) is True

    def test_empty_config(self):
        with pytest.raises(ValueError, match="at least one of"):
            DetectionStrategyFactory().make_from_config({"base_path": "/tmp"})


class TestPlatform:
    @pytest.mark.parametrize(
        "system,expected",
        [("Darwin", Platform.DARWIN), ("Windows", Platform.WINDOWS), ("Linux", Platform.LINUX)],
    )
    def test_current(self, system, expected):
        with patch("query_mcp.install.detection.platform.system", return_value=system):
            assert Platform.current() == expected
