"""Pydantic schema for configuration validation.

All config values are validated at startup. Typos and invalid values
fail fast with clear error messages.

Usage:
    from src.config_schema import validate_config_dict, AppConfig
    config = validate_config_dict({"runs": {"max_wait_seconds": 30}})
    # config is now a validated AppConfig instance
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# BASE MODEL WITH STRICT VALIDATION
# =============================================================================

class StrictModel(BaseModel):
    """Base model that rejects unknown fields (catches typos)."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# OPENAI MODEL
# =============================================================================

class OpenAIConfig(StrictModel):
    """Remote assistant service settings."""

    api_key_env: str = Field(
        default="OPENAI_API_KEY",
        description="Environment variable holding the API key"
    )
    base_url: str | None = Field(
        default=None,
        description="Optional API base URL override"
    )
    default_model: str = Field(
        default="gpt-4o-mini",
        description="Model used when creating a new assistant"
    )
    list_limit: int = Field(
        default=100,
        gt=0,
        le=100,
        description="Page size when listing assistants"
    )


# =============================================================================
# RUNS MODEL
# =============================================================================

class RunsConfig(StrictModel):
    """Run polling configuration.

    Polling is bounded: every wait has an interval and a deadline.
    """

    poll_interval_seconds: float = Field(
        default=0.5,
        gt=0,
        description="Delay between run status checks"
    )
    max_wait_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Deadline for a run to leave queued/in_progress"
    )
    cancel_on_timeout: bool = Field(
        default=True,
        description="Ask the service to cancel a run whose deadline expired"
    )


# =============================================================================
# FUNCTIONS MODEL
# =============================================================================

class FunctionsConfig(StrictModel):
    """Dynamic function loading and self-extension configuration."""

    directory: str = Field(
        default="functions",
        description="Functions directory, relative to the working directory"
    )
    self_extension_function: str = Field(
        default="createNewFunction",
        description="Tool whose calls author and activate a new function"
    )
    settle_delay_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Wait after authoring before the new module is loaded"
    )
    ui_action_prefix: str = Field(
        default="ui_",
        min_length=1,
        description="Tool-name prefix for UI signaling actions (never dispatched)"
    )
    protected: list[str] = Field(
        default_factory=lambda: ["createNewFunction"],
        description="Function names that self-extension may not overwrite"
    )
    local_packages: list[str] = Field(
        default_factory=lambda: ["src"],
        description="Top-level imports that are never treated as dependencies"
    )

    @field_validator("directory")
    @classmethod
    def directory_not_empty(cls, v: str) -> str:
        """Reject an empty functions directory."""
        if not v.strip():
            raise ValueError("functions.directory must not be empty")
        return v


# =============================================================================
# LIBRARIES MODEL
# =============================================================================

class LibrariesConfig(StrictModel):
    """Installation of missing dependencies for function modules."""

    install_missing: bool = Field(
        default=True,
        description="Install missing dependencies with pip"
    )
    install_timeout_seconds: int = Field(
        default=120,
        gt=0,
        description="Timeout for a single pip install"
    )
    aliases: dict[str, str] = Field(
        default_factory=lambda: {
            "bs4": "beautifulsoup4",
            "yaml": "pyyaml",
            "PIL": "pillow",
            "cv2": "opencv-python",
            "sklearn": "scikit-learn",
            "dateutil": "python-dateutil",
            "dotenv": "python-dotenv",
        },
        description="Import name -> distribution name"
    )
    blocked: list[str] = Field(
        default_factory=lambda: [
            "docker",  # Docker daemon access
            "debugpy",  # Debugger attachment
            "pyautogui",  # Desktop automation
            "keyboard",  # Keyboard input capture
            "pynput",  # Input device control
        ],
        description="Blocked packages (security risks)"
    )


# =============================================================================
# LOGGING MODEL
# =============================================================================

class LoggingConfig(StrictModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level"
    )
    format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="logging.Formatter format string"
    )
    event_log: str | None = Field(
        default="logs/events.jsonl",
        description="JSONL event log path (null disables it)"
    )


# =============================================================================
# ROOT CONFIG MODEL
# =============================================================================

class AppConfig(StrictModel):
    """Root configuration model for the entire application.

    All fields have sensible defaults, so an empty config file is valid.
    """

    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    runs: RunsConfig = Field(default_factory=RunsConfig)
    functions: FunctionsConfig = Field(default_factory=FunctionsConfig)
    libraries: LibrariesConfig = Field(default_factory=LibrariesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# LOADING FUNCTIONS
# =============================================================================

def validate_config_dict(config_dict: dict[str, Any]) -> AppConfig:
    """Validate a configuration dictionary.

    Raises:
        pydantic.ValidationError: If config is invalid.
    """
    return AppConfig.model_validate(config_dict)


__all__ = [
    "AppConfig",
    "OpenAIConfig",
    "RunsConfig",
    "FunctionsConfig",
    "LibrariesConfig",
    "LoggingConfig",
    "StrictModel",
    "validate_config_dict",
]
