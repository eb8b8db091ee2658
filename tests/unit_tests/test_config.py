"""Tests for config module including project discovery and settings."""

from pathlib import Path

import pytest

from lens_cli.config import (
    MCP_CONFIG_ENV_VAR,
    Settings,
    _find_project_root,
    state_dir,
)


class TestProjectRootDetection:
    """Test project root detection via .git directory."""

    def test_find_project_root_with_git(self, tmp_path: Path) -> None:
        """Test that project root is found when .git directory exists."""
        project_root = tmp_path / "my-project"
        project_root.mkdir()
        (project_root / ".git").mkdir()

        # Search from a subdirectory
        subdir = project_root / "src" / "components"
        subdir.mkdir(parents=True)

        assert _find_project_root(subdir) == project_root.resolve()

    def test_find_project_root_no_git(self, tmp_path: Path) -> None:
        """Test that None is returned when no .git directory exists."""
        no_git_dir = tmp_path / "no-git"
        no_git_dir.mkdir()

        assert _find_project_root(no_git_dir) is None

    def test_find_project_root_nested_git(self, tmp_path: Path) -> None:
        """Test that nearest .git directory is found (not parent repos)."""
        outer_repo = tmp_path / "outer"
        outer_repo.mkdir()
        (outer_repo / ".git").mkdir()

        inner_repo = outer_repo / "inner"
        inner_repo.mkdir()
        (inner_repo / ".git").mkdir()

        assert _find_project_root(inner_repo) == inner_repo.resolve()


class TestSettings:
    """Test Settings.from_environment."""

    def test_project_root_falls_back_to_start_path(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Without a .git ancestor the start path is the project root."""
        monkeypatch.delenv(MCP_CONFIG_ENV_VAR, raising=False)
        settings = Settings.from_environment(start_path=tmp_path)

        assert settings.project_root == tmp_path.resolve()
        assert settings.mcp_config_path == tmp_path.resolve() / ".mcp.json"

    def test_project_root_uses_git_root(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The .mcp.json is looked up at the repository root."""
        monkeypatch.delenv(MCP_CONFIG_ENV_VAR, raising=False)
        (tmp_path / ".git").mkdir()
        nested = tmp_path / "skills" / "qodana-scan"
        nested.mkdir(parents=True)

        settings = Settings.from_environment(start_path=nested)

        assert settings.mcp_config_path == tmp_path.resolve() / ".mcp.json"

    def test_explicit_project_root_is_not_walked_up(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An explicit root inside a repository is kept as given."""
        monkeypatch.delenv(MCP_CONFIG_ENV_VAR, raising=False)
        (tmp_path / ".git").mkdir()
        sub = tmp_path / "sub"
        sub.mkdir()

        settings = Settings.from_environment(project_root=sub)

        assert settings.project_root == sub.resolve()
        assert settings.mcp_config_path == sub.resolve() / ".mcp.json"

    def test_mcp_config_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """LENS_MCP_CONFIG points at an explicit config file."""
        override = tmp_path / "custom.json"
        monkeypatch.setenv(MCP_CONFIG_ENV_VAR, str(override))

        settings = Settings.from_environment(start_path=tmp_path)

        assert settings.mcp_config_path == override

    def test_gemini_key_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """GEMINI_API_KEY is read, and an empty value counts as unset."""
        monkeypatch.setenv("GEMINI_API_KEY", "abc")
        assert Settings.from_environment(start_path=tmp_path).gemini_api_key == "abc"

        monkeypatch.setenv("GEMINI_API_KEY", "")
        assert Settings.from_environment(start_path=tmp_path).gemini_api_key is None


def test_state_dir(tmp_path: Path) -> None:
    """State lives under .claude in the target."""
    assert state_dir(tmp_path) == tmp_path / ".claude"
