"""Configuration schema using Pydantic."""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "your-api-key-here"


class GenerationConfig(BaseModel):
    """Sampling parameters sent with every generate call."""

    temperature: float = 0.7
    max_output_tokens: int = 2048
    top_k: int = 40
    top_p: float = 0.95


class GeminiConfig(BaseModel):
    """Gemini backend and request pipeline configuration."""

    api_key: str = ""
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.5-flash"
    max_retries: int = 3
    timeout: float = 30.0  # seconds per attempt
    fallback_enabled: bool = True  # canned local answer once every attempt failed
    enable_fallback_method: bool = True  # one extra attempt over plain HTTP
    backoff_network: float = 2.0
    backoff_default: float = 1.0
    backoff_jitter: float = 1.0
    generation: GenerationConfig = Field(default_factory=GenerationConfig)


class SessionConfig(BaseModel):
    """Conversation memory limits and maintenance windows."""

    max_memory_size: int = Field(default=1000, gt=0)
    compression_threshold: int = Field(default=500, ge=0)
    system_retention_hours: float = 24
    compression_age_hours: float = 2
    compression_min_length: int = 100
    compression_prefix_length: int = 100
    consolidation_window_seconds: float = 60
    history_entries: int = 20
    retain_active_initialization: bool = True
    clear_on_restart: bool = False
    storage_path: str = ""  # empty means ~/.wysper/sessions/session.jsonl


class SkillsConfig(BaseModel):
    """Skill selection and prompt sources."""

    active: str = "general"
    prompts_dir: str = ""  # empty means built-in prompts only
    programming_language: str = ""


class Config(BaseModel):
    """Root configuration."""

    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    skills: SkillsConfig = Field(default_factory=SkillsConfig)

    @property
    def session_path(self) -> Path:
        """Get expanded session storage path."""
        if self.session.storage_path:
            return Path(self.session.storage_path).expanduser()
        return Path.home() / ".wysper" / "sessions" / "session.jsonl"

    @property
    def prompts_path(self) -> Path | None:
        """Get expanded prompt override directory, if any."""
        if not self.skills.prompts_dir:
            return None
        return Path(self.skills.prompts_dir).expanduser()

    def get_api_key(self) -> str | None:
        """Get the Gemini API key. GEMINI_API_KEY in the environment wins."""
        key = os.environ.get("GEMINI_API_KEY") or self.gemini.api_key
        if not key or key == PLACEHOLDER_API_KEY:
            return None
        return key


def get_config_path() -> Path:
    """Get the config file path."""
    return Path.home() / ".wysper" / "config.json"


def load_config() -> Config:
    """Load configuration from file."""
    config_path = get_config_path()

    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
            return Config(**data)
        except Exception as e:
            logger.warning("Ignoring unreadable config at %s: %s", config_path, e)

    return Config()


def save_config(config: Config) -> None:
    """Save configuration to file."""
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(config.model_dump_json(indent=2))
