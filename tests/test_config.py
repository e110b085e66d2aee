"""Tests for ralph.config (RalphConfig.load and sub-configs)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ralph.config import PathsConfig, RalphConfig
from ralph.errors import ConfigError

ENV_VARS = (
    "RALPH_MODEL",
    "RALPH_REASONING_EFFORT",
    "RALPH_MAX_ITERATIONS",
    "RALPH_SENTINEL",
    "RALPH_ROOT",
    "RALPH_API_BASE_URL",
    "RALPH_VERIFY_COMMAND",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_defaults(self) -> None:
        config = RalphConfig.load()
        assert config.loop.max_iterations == 30
        assert config.loop.sentinel == "SUCCESS"
        assert config.paths.memory == "memory.json"
        assert config.paths.goal == "goal.md"
        assert config.paths.skills == "skills.md"
        assert config.toolsets == ["state", "api"]
        assert config.mcp_servers == []
        assert config.verification.command is None

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = RalphConfig.load(str(tmp_path / "absent.json"))
        assert config.loop.max_iterations == 30


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class TestConfigFiles:
    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "ralph.json"
        path.write_text(
            json.dumps(
                {
                    "loop": {"max_iterations": 5, "sentinel": "DONE"},
                    "toolsets": ["state", "files"],
                    "mcp_servers": [{"name": "tools", "command": "tool-server", "args": ["--stdio"]}],
                }
            )
        )
        config = RalphConfig.load(str(path))
        assert config.loop.max_iterations == 5
        assert config.loop.sentinel == "DONE"
        assert config.toolsets == ["state", "files"]
        assert config.mcp_servers[0].args == ["--stdio"]
        assert config.mcp_servers[0].required is False

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "ralph.yaml"
        path.write_text(
            "llm:\n"
            "  model: openai/gpt-4o\n"
            "verification:\n"
            "  command: pytest -q\n"
            "  timeout: 60\n"
        )
        config = RalphConfig.load(str(path))
        assert config.llm.model == "openai/gpt-4o"
        assert config.verification.command == "pytest -q"
        assert config.verification.timeout == 60

    def test_empty_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "ralph.yml"
        path.write_text("")
        assert RalphConfig.load(str(path)).loop.sentinel == "SUCCESS"

    def test_malformed_file(self, tmp_path: Path) -> None:
        path = tmp_path / "ralph.json"
        path.write_text("{broken")
        with pytest.raises(ConfigError):
            RalphConfig.load(str(path))

    def test_non_mapping_file(self, tmp_path: Path) -> None:
        path = tmp_path / "ralph.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            RalphConfig.load(str(path))

    def test_invalid_values(self, tmp_path: Path) -> None:
        path = tmp_path / "ralph.json"
        path.write_text(json.dumps({"loop": {"max_iterations": 0}}))
        with pytest.raises(ConfigError):
            RalphConfig.load(str(path))

    def test_unknown_toolset(self, tmp_path: Path) -> None:
        path = tmp_path / "ralph.json"
        path.write_text(json.dumps({"toolsets": ["state", "teleport"]}))
        with pytest.raises(ConfigError, match="teleport"):
            RalphConfig.load(str(path))


# ---------------------------------------------------------------------------
# Env overrides
# ---------------------------------------------------------------------------


class TestEnvOverrides:
    def test_env_beats_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "ralph.json"
        path.write_text(json.dumps({"llm": {"model": "file/model"}, "loop": {"max_iterations": 5}}))
        monkeypatch.setenv("RALPH_MODEL", "env/model")
        monkeypatch.setenv("RALPH_MAX_ITERATIONS", "7")
        config = RalphConfig.load(str(path))
        assert config.llm.model == "env/model"
        assert config.loop.max_iterations == 7

    def test_all_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RALPH_REASONING_EFFORT", "HIGH")
        monkeypatch.setenv("RALPH_SENTINEL", "<<DONE>>")
        monkeypatch.setenv("RALPH_ROOT", "/srv/agent")
        monkeypatch.setenv("RALPH_API_BASE_URL", "https://example.test/api/")
        monkeypatch.setenv("RALPH_VERIFY_COMMAND", "make test")
        config = RalphConfig.load()
        assert config.llm.reasoning_effort == "high"
        assert config.loop.sentinel == "<<DONE>>"
        assert config.paths.root == "/srv/agent"
        assert config.api.base_url == "https://example.test/api/"
        assert config.verification.command == "make test"

    def test_bad_max_iterations_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RALPH_MAX_ITERATIONS", "ten")
        with pytest.raises(ConfigError, match="max_iterations"):
            RalphConfig.load()

    def test_zero_max_iterations_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RALPH_MAX_ITERATIONS", "0")
        with pytest.raises(ConfigError):
            RalphConfig.load()


# ---------------------------------------------------------------------------
# PathsConfig
# ---------------------------------------------------------------------------


class TestPathsConfig:
    def test_relative_to_root(self, tmp_path: Path) -> None:
        paths = PathsConfig(root=str(tmp_path))
        assert paths.resolve("memory") == tmp_path.resolve() / "memory.json"
        assert paths.resolve("goal") == tmp_path.resolve() / "goal.md"

    def test_absolute_kept(self, tmp_path: Path) -> None:
        target = tmp_path / "elsewhere" / "state.json"
        paths = PathsConfig(root="/nonexistent", memory=str(target))
        assert paths.resolve("memory") == target
