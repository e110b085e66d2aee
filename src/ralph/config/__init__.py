"""Configuration — Pydantic models for ralph settings."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ralph.errors import ConfigError

TOOLSETS = ("state", "api", "files", "verify")


class LLMConfig(BaseModel):
    """Reasoning engine configuration.

    Model names use litellm's provider-prefix format:
        "anthropic/claude-sonnet-4-5-20250929"
        "openai/gpt-4o"

    API keys are read from env vars automatically by litellm
    (ANTHROPIC_API_KEY, GEMINI_API_KEY, OPENAI_API_KEY).
    """

    model: str = Field(default="anthropic/claude-sonnet-4-5-20250929")
    temperature: float | None = Field(default=None)
    max_tokens: int | None = Field(default=None)
    reasoning_effort: str | None = Field(
        default=None,
        description="'low', 'medium' or 'high'. Unset disables reasoning tokens.",
    )


class LoopConfig(BaseModel):
    """Bounds and signals for the iteration loop."""

    max_iterations: int = Field(default=30, ge=1)
    sentinel: str = Field(
        default="SUCCESS",
        description="Literal token the engine emits once the goal is met",
    )
    max_steps_per_turn: int = Field(
        default=25, ge=1, description="Engine round-trips allowed inside one turn"
    )
    max_consecutive_failures: int | None = Field(
        default=3,
        description=(
            "Abort the run after this many iterations in a row could not reach "
            "the engine. None keeps going until the budget is spent."
        ),
    )


class PathsConfig(BaseModel):
    """File locations. Relative paths resolve against ``root``."""

    root: str = Field(default=".")
    memory: str = Field(default="memory.json")
    goal: str = Field(default="goal.md")
    skills: str = Field(default="skills.md")
    workspace: str = Field(
        default=".", description="Root directory for the file tools"
    )

    def resolve(self, name: str) -> Path:
        root = Path(self.root).expanduser().resolve()
        path = Path(getattr(self, name)).expanduser()
        return path if path.is_absolute() else (root / path).resolve()


class ApiConfig(BaseModel):
    """Remote REST service the api toolset talks to."""

    base_url: str = Field(default="https://www.moltbook.com/api/v1/")
    timeout: float = Field(default=30.0)


class VerificationConfig(BaseModel):
    """External command used by the run_verification tool."""

    command: str | None = Field(default=None, description="e.g. 'pytest -q'")
    timeout: int = Field(default=300)


class McpServerConfig(BaseModel):
    """A tool-provider process reached over stdio."""

    name: str
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] | None = None
    cwd: str | None = None
    descriptions: dict[str, str] = Field(
        default_factory=dict,
        description="Description overrides for well-known remote tools",
    )
    required: bool = Field(
        default=False, description="Fail startup if this server cannot be reached"
    )
    init_timeout: float = Field(default=30.0)


class RalphConfig(BaseModel):
    """Top-level ralph configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    loop: LoopConfig = Field(default_factory=LoopConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    mcp_servers: list[McpServerConfig] = Field(default_factory=list)
    toolsets: list[str] = Field(default_factory=lambda: ["state", "api"])

    @classmethod
    def load(cls, config_path: str | None = None) -> RalphConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            RALPH_MODEL             - Engine model (litellm format with provider prefix)
            RALPH_REASONING_EFFORT  - Reasoning effort (low/medium/high)
            RALPH_MAX_ITERATIONS    - Iteration budget
            RALPH_SENTINEL          - Success token
            RALPH_ROOT              - Project root (memory.json, goal.md, skills.md)
            RALPH_API_BASE_URL      - Base URL of the remote REST service
            RALPH_VERIFY_COMMAND    - Command run by run_verification
        """
        from dotenv import load_dotenv

        load_dotenv(override=True)

        config_data: dict[str, Any] = {}
        if config_path and os.path.exists(config_path):
            config_data = _read_config_file(config_path)

        llm = config_data.setdefault("llm", {})
        loop = config_data.setdefault("loop", {})
        paths = config_data.setdefault("paths", {})
        api = config_data.setdefault("api", {})
        verification = config_data.setdefault("verification", {})

        env_model = os.environ.get("RALPH_MODEL")
        if env_model:
            llm["model"] = env_model

        env_reasoning_effort = os.environ.get("RALPH_REASONING_EFFORT")
        if env_reasoning_effort:
            llm["reasoning_effort"] = env_reasoning_effort.lower()

        env_max_iterations = os.environ.get("RALPH_MAX_ITERATIONS")
        if env_max_iterations:
            loop["max_iterations"] = env_max_iterations

        env_sentinel = os.environ.get("RALPH_SENTINEL")
        if env_sentinel:
            loop["sentinel"] = env_sentinel

        env_root = os.environ.get("RALPH_ROOT")
        if env_root:
            paths["root"] = env_root

        env_base_url = os.environ.get("RALPH_API_BASE_URL")
        if env_base_url:
            api["base_url"] = env_base_url

        env_verify = os.environ.get("RALPH_VERIFY_COMMAND")
        if env_verify:
            verification["command"] = env_verify

        try:
            config = cls.model_validate(config_data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        unknown = [t for t in config.toolsets if t not in TOOLSETS]
        if unknown:
            raise ConfigError(
                f"Unknown toolsets: {', '.join(unknown)} "
                f"(expected any of {', '.join(TOOLSETS)})"
            )
        return config


def _read_config_file(config_path: str) -> dict[str, Any]:
    """Parse a JSON or YAML config file into a dict."""
    try:
        with open(config_path) as f:
            if config_path.endswith((".yaml", ".yml")):
                import yaml

                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
    except Exception as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return data
