"""Tests for CLI commands."""

import tempfile
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from recallbin.cli import cli
from recallbin.config import ConfigManager


def _init(config_dir: Path, *extra: str):
    runner = CliRunner()
    return runner.invoke(cli, ["init", "--config-dir", str(config_dir), *extra])


class TestCliInit:
    """Test recallbin init command."""

    def test_init_creates_configuration(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            config_dir = Path(temp_dir) / ".recallbin"

            result = _init(config_dir, "--gemini-api-key", "g-live-key", "--daily-quota", "7")

            assert result.exit_code == 0
            assert "[SUCCESS]" in result.output
            cm = ConfigManager(config_dir)
            assert cm.load_app_config().daily_quota_limit == 7
            assert (config_dir / "data").is_dir()
            settings = cm.load_env_settings()
            assert settings.gemini_api_key == "g-live-key"
            assert settings.recallbin_api_token in result.output

    def test_init_warns_without_provider_key(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            result = _init(Path(temp_dir) / ".recallbin")

            assert result.exit_code == 0
            assert "No AI provider key set" in result.output


class TestCliDoctor:
    """Test recallbin doctor command."""

    def test_doctor_passes_after_init(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            config_dir = Path(temp_dir) / ".recallbin"
            _init(config_dir, "--gemini-api-key", "g-live-key")

            result = CliRunner().invoke(cli, ["doctor", "--config-dir", str(config_dir)])

            assert result.exit_code == 0
            assert "[PASS] config.yaml parsed successfully" in result.output
            assert "[PASS] AI provider keys configured: GEMINI_API_KEY" in result.output
            assert "[PASS] API token looks configured" in result.output

    def test_doctor_fails_without_api_token(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            config_dir = Path(temp_dir) / ".recallbin"
            _init(config_dir)
            ConfigManager(config_dir).env_file.write_text(
                "GEMINI_API_KEY=your-gemini-key\n", encoding="utf-8"
            )

            result = CliRunner().invoke(cli, ["doctor", "--config-dir", str(config_dir)])

            assert result.exit_code == 1
            assert "No API token configured" in result.output
            assert "No AI provider key configured" in result.output

    def test_doctor_fails_without_config(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            result = CliRunner().invoke(
                cli, ["doctor", "--config-dir", str(Path(temp_dir) / "missing")]
            )

            assert result.exit_code == 1
            assert "Missing config file" in result.output


class TestCliServe:
    """Test recallbin serve command."""

    def test_serve_requires_configuration(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            result = CliRunner().invoke(
                cli, ["serve", "--config-dir", str(Path(temp_dir) / "missing")]
            )

            assert result.exit_code == 1
            assert "Configuration not found" in result.output

    def test_serve_starts_app_factory(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            config_dir = Path(temp_dir) / ".recallbin"
            _init(config_dir)

            with patch("recallbin.cli.uvicorn.run") as run:
                result = CliRunner().invoke(
                    cli, ["serve", "--config-dir", str(config_dir), "--port", "5050"]
                )

            assert result.exit_code == 0
            args, kwargs = run.call_args
            assert args[0] == "recallbin.api:create_app"
            assert kwargs["factory"] is True
            assert kwargs["port"] == 5050
            assert kwargs["host"] == "127.0.0.1"
