"""Tests for the wysper CLI commands."""

from unittest.mock import patch

from typer.testing import CliRunner

from wysper import __version__
from wysper.assistant import Assistant
from wysper.cli.main import app
from wysper.config.schema import Config, GeminiConfig, SessionConfig
from wysper.providers.base import LLMProvider, LLMRequest, LLMResponse

runner = CliRunner()


class CannedProvider(LLMProvider):
    async def generate(self, request: LLMRequest, model: str | None = None) -> LLMResponse:
        return LLMResponse(content="Use a hash map.")

    def get_default_model(self) -> str:
        return "test-model"


def _assistant(tmp_path, api_key: str) -> Assistant:
    config = Config(
        gemini=GeminiConfig(api_key=api_key, backoff_network=0, backoff_default=0, backoff_jitter=0),
        session=SessionConfig(storage_path=str(tmp_path / "session.jsonl")),
    )
    return Assistant(config, provider_factory=lambda key: CannedProvider(api_key=key))


class TestAppBasics:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("chat", "set-key", "skills", "status", "ping"):
            assert command in result.output


class TestSkillsCommand:
    def test_lists_builtin_skills(self):
        with patch("wysper.config.load_config", return_value=Config()):
            result = runner.invoke(app, ["skills"])

        assert result.exit_code == 0
        assert "dsa" in result.output
        assert "behavioral" in result.output


class TestSetKeyCommand:
    def test_saves_key(self, tmp_path):
        config = Config()
        with (
            patch("wysper.config.load_config", return_value=config),
            patch("wysper.config.save_config") as mock_save,
            patch("wysper.config.get_config_path", return_value=tmp_path / "config.json"),
        ):
            result = runner.invoke(app, ["set-key"], input="  AIza-test-key  \n")

        assert result.exit_code == 0
        assert "Config saved" in result.output
        assert mock_save.call_args[0][0].gemini.api_key == "AIza-test-key"


class TestChatCommand:
    def test_missing_key_exits(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with patch("wysper.cli.main._create_assistant", return_value=_assistant(tmp_path, "")):
            result = runner.invoke(app, ["chat", "-m", "hello"])

        assert result.exit_code == 1
        assert "No Gemini API key" in result.output

    def test_single_message(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        assistant = _assistant(tmp_path, "test-key")
        with patch("wysper.cli.main._create_assistant", return_value=assistant):
            result = runner.invoke(app, ["chat", "-m", "Two sum?", "--skill", "algorithms"])

        assert result.exit_code == 0
        assert "Use a hash map." in result.output
        assert assistant.active_skill == "dsa"
        assert (tmp_path / "session.jsonl").exists()


class TestStatusCommand:
    def test_shows_memory(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with patch("wysper.cli.main._create_assistant", return_value=_assistant(tmp_path, "")):
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "Active skill" in result.output
        assert "missing" in result.output
