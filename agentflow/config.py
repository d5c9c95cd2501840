"""Shared agentflow configuration utilities.

Centralises reading of ~/.agentflow/configuration.json so that the CLI and
embedding applications share one implementation. Environment variables
override the file.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

AGENTFLOW_CONFIG_FILE = Path.home() / ".agentflow" / "configuration.json"

MAX_TOOL_ITERATIONS_ENV = "AGENTFLOW_MAX_TOOL_ITERATIONS"
INFERENCE_TIMEOUT_ENV = "AGENTFLOW_INFERENCE_TIMEOUT"

MAX_TOOL_ITERATIONS = 15
DEFAULT_RESPONSE_TIMEOUT = 60.0


def get_agentflow_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from ~/.agentflow/configuration.json."""
    config_file = path or AGENTFLOW_CONFIG_FILE
    if not config_file.exists():
        return {}
    try:
        with open(config_file, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def _env_number(name: str, cast: type) -> Any | None:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        return None


def get_max_tool_iterations() -> int:
    """Return the tool loop bound, falling back to MAX_TOOL_ITERATIONS."""
    from_env = _env_number(MAX_TOOL_ITERATIONS_ENV, int)
    if from_env is not None and from_env > 0:
        return from_env
    return get_agentflow_config().get("inference", {}).get("max_tool_iterations", MAX_TOOL_ITERATIONS)


def get_inference_timeout() -> float:
    """Return the per-request response window in seconds."""
    from_env = _env_number(INFERENCE_TIMEOUT_ENV, float)
    if from_env is not None and from_env > 0:
        return from_env
    return float(
        get_agentflow_config().get("inference", {}).get("timeout_seconds", DEFAULT_RESPONSE_TIMEOUT)
    )


def get_log_level() -> str:
    return str(get_agentflow_config().get("logging", {}).get("level", "INFO")).upper()


def get_log_format() -> str:
    return get_agentflow_config().get("logging", {}).get("format", "auto")


# ---------------------------------------------------------------------------
# EngineConfig – shared by the CLI and embedding applications
# ---------------------------------------------------------------------------


@dataclass
class EngineConfig:
    """Engine configuration loaded from ~/.agentflow/configuration.json."""

    max_tool_iterations: int = field(default_factory=get_max_tool_iterations)
    inference_timeout_seconds: float = field(default_factory=get_inference_timeout)
    log_level: str = field(default_factory=get_log_level)
    log_format: str = field(default_factory=get_log_format)
