"""Configuration management via environment variables and YAML."""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field


class BrowserConfig(BaseModel):
    """Browser launch configuration, snapshotted onto every session."""

    headless: bool = True
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str | None = None
    proxy: str | None = None
    extra_args: list[str] = Field(default_factory=list)


class SessionsConfig(BaseModel):
    """Session registry configuration."""

    default_policy: Literal["first", "latest"] = "first"
    console_buffer_size: int = 500


class ExecutorConfig(BaseModel):
    """Per-action timeout defaults, in milliseconds."""

    element_timeout_ms: int = 10_000
    navigation_timeout_ms: int = 30_000


class ScenariosConfig(BaseModel):
    """Scenario persistence configuration."""

    storage_dir: Path = Path("tmp/scenarios")


class HistoryConfig(BaseModel):
    """Action history (JSONL) configuration."""

    enabled: bool = True
    directory: Path = Path("tmp/history")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    file: Path | None = None


class Config(BaseModel):
    """Main configuration class."""

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    sessions: SessionsConfig = Field(default_factory=SessionsConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    scenarios: ScenariosConfig = Field(default_factory=ScenariosConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        log_file = os.getenv("LOG_FILE")
        return cls(
            browser=BrowserConfig(
                headless=os.getenv("HEADLESS", "true").lower() == "true",
                browser_type=os.getenv("BROWSER_TYPE", "chromium"),
                viewport_width=int(os.getenv("VIEWPORT_WIDTH", "1920")),
                viewport_height=int(os.getenv("VIEWPORT_HEIGHT", "1080")),
                user_agent=os.getenv("USER_AGENT"),
                proxy=os.getenv("PROXY"),
            ),
            sessions=SessionsConfig(
                default_policy=os.getenv("DEFAULT_SESSION_POLICY", "first"),
                console_buffer_size=int(os.getenv("CONSOLE_BUFFER_SIZE", "500")),
            ),
            executor=ExecutorConfig(
                element_timeout_ms=int(os.getenv("ELEMENT_TIMEOUT_MS", "10000")),
                navigation_timeout_ms=int(os.getenv("NAVIGATION_TIMEOUT_MS", "30000")),
            ),
            scenarios=ScenariosConfig(
                storage_dir=Path(os.getenv("SCENARIOS_DIR", "tmp/scenarios")),
            ),
            history=HistoryConfig(
                enabled=os.getenv("HISTORY_ENABLED", "true").lower() == "true",
                directory=Path(os.getenv("HISTORY_DIR", "tmp/history")),
            ),
            logging=LoggingConfig(
                level=os.getenv("LOG_LEVEL", "INFO").upper(),
                file=Path(log_file) if log_file else None,
            ),
        )

    @classmethod
    def from_yaml(cls, path: Path | str) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def load(cls, config_path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file (if exists) merged with env vars.

        Environment variables take precedence over YAML values.
        """
        base_config: dict[str, Any] = {}

        if config_path:
            path = Path(config_path)
            if path.exists():
                with open(path) as f:
                    base_config = yaml.safe_load(f) or {}

        default_path = Path("config.yml")
        if not config_path and default_path.exists():
            with open(default_path) as f:
                base_config = yaml.safe_load(f) or {}

        config = cls(**base_config) if base_config else cls()

        env_config = cls.from_env()

        # Only explicitly set variables override the file
        if os.getenv("HEADLESS"):
            config.browser.headless = env_config.browser.headless
        if os.getenv("BROWSER_TYPE"):
            config.browser.browser_type = env_config.browser.browser_type
        if os.getenv("VIEWPORT_WIDTH"):
            config.browser.viewport_width = env_config.browser.viewport_width
        if os.getenv("VIEWPORT_HEIGHT"):
            config.browser.viewport_height = env_config.browser.viewport_height
        if os.getenv("USER_AGENT"):
            config.browser.user_agent = env_config.browser.user_agent
        if os.getenv("PROXY"):
            config.browser.proxy = env_config.browser.proxy
        if os.getenv("DEFAULT_SESSION_POLICY"):
            config.sessions.default_policy = env_config.sessions.default_policy
        if os.getenv("CONSOLE_BUFFER_SIZE"):
            config.sessions.console_buffer_size = env_config.sessions.console_buffer_size
        if os.getenv("ELEMENT_TIMEOUT_MS"):
            config.executor.element_timeout_ms = env_config.executor.element_timeout_ms
        if os.getenv("NAVIGATION_TIMEOUT_MS"):
            config.executor.navigation_timeout_ms = env_config.executor.navigation_timeout_ms
        if os.getenv("SCENARIOS_DIR"):
            config.scenarios.storage_dir = env_config.scenarios.storage_dir
        if os.getenv("HISTORY_ENABLED"):
            config.history.enabled = env_config.history.enabled
        if os.getenv("HISTORY_DIR"):
            config.history.directory = env_config.history.directory
        if os.getenv("LOG_LEVEL"):
            config.logging.level = env_config.logging.level
        if os.getenv("LOG_FILE"):
            config.logging.file = env_config.logging.file

        return config

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
