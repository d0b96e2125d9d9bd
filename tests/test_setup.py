"""Tests for today.setup: the interactive setup wizard."""

from unittest.mock import patch
from urllib.error import URLError

import pytest
from click.testing import CliRunner

from today.cli import main
from today.settings import Settings, default_settings, load_config, save_config
from today.setup import (
    configure_provider,
    describe_choice,
    format_model_table,
    is_first_run,
    prompt_api_key,
    prompt_menu,
    prompt_model_selection,
)


# ---------------------------------------------------------------------------
# is_first_run
# ---------------------------------------------------------------------------

class TestIsFirstRun:
    def test_no_settings_file(self):
        assert is_first_run() is True

    def test_settings_file_exists(self):
        save_config(default_settings())
        assert is_first_run() is False

    def test_follows_config_exists(self, monkeypatch):
        monkeypatch.setattr("today.settings.config_exists", lambda path=None: True)
        assert is_first_run() is False

    def test_cli_first_run_uses_wizard_check(self, monkeypatch):
        monkeypatch.setattr("today.setup.is_first_run", lambda: False)
        result = CliRunner().invoke(main, ["config", "show"])
        assert result.exit_code == 0
        assert "No configuration found" not in result.output


# ---------------------------------------------------------------------------
# Menus and prompts
# ---------------------------------------------------------------------------

class TestPromptMenu:
    def test_returns_zero_based_index(self):
        with patch("today.setup.click.prompt", return_value="3"):
            assert prompt_menu("Pick", ["a", "b", "c"]) == 2

    @pytest.mark.parametrize("answer", ["0", "9", "abc", ""])
    def test_invalid_falls_back_to_default(self, answer):
        with patch("today.setup.click.prompt", return_value=answer):
            assert prompt_menu("Pick", ["a", "b", "c"], default=2) == 1


class TestDescribeChoice:
    def test_auto(self):
        assert "recommended" in describe_choice("auto")

    def test_provider(self):
        assert "no API key" in describe_choice("ollama")


class TestFormatModelTable:
    def test_numbers_models(self):
        table = format_model_table("ollama", ["llama3.2", "qwen3"])
        assert "Ollama models:" in table
        assert "1. llama3.2" in table
        assert "2. qwen3" in table


class TestPromptModelSelection:
    def test_pick_by_number(self):
        with patch("today.setup.click.prompt", return_value="2"):
            assert prompt_model_selection("ollama", ["llama3.2", "qwen3"], "llama3.2") == "qwen3"

    def test_custom_name(self):
        with patch("today.setup.click.prompt", side_effect=["c", "my-finetune"]):
            assert prompt_model_selection("ollama", ["llama3.2"], "llama3.2") == "my-finetune"

    def test_no_models_is_text_prompt(self):
        with patch("today.setup.click.prompt", return_value="  ") as mock_prompt:
            assert prompt_model_selection("lmstudio", [], "local-model") == "local-model"
        assert mock_prompt.call_count == 1


class TestPromptApiKey:
    def test_keep_existing(self):
        with patch("today.setup.click.confirm", return_value=False), \
             patch("today.setup.click.prompt") as mock_prompt:
            assert prompt_api_key("openai", "sk-existing-key-123") == "sk-existing-key-123"
        mock_prompt.assert_not_called()

    def test_replace_existing(self):
        with patch("today.setup.click.confirm", return_value=True), \
             patch("today.setup.click.prompt", return_value=" sk-new "):
            assert prompt_api_key("openai", "sk-old") == "sk-new"

    def test_skip(self):
        with patch("today.setup.click.prompt", return_value=""):
            assert prompt_api_key("openrouter") == ""


# ---------------------------------------------------------------------------
# configure_provider
# ---------------------------------------------------------------------------

class TestConfigureProvider:
    def test_key_provider_skipped_without_key(self):
        settings = default_settings()
        with patch("today.setup.click.prompt", return_value=""), \
             patch("today.setup.fetch_models_for_provider") as mock_fetch:
            configure_provider(settings, "openai")
        mock_fetch.assert_not_called()
        assert settings.models["openai"] == "gpt-4o-mini"

    def test_key_provider_with_fetched_models(self):
        settings = default_settings()
        with patch("today.setup.click.prompt", side_effect=["sk-test", "1"]), \
             patch("today.setup.fetch_models_for_provider", return_value=["gpt-4o", "gpt-4o-mini"]):
            configure_provider(settings, "openai")
        assert settings.api_keys["openai"] == "sk-test"
        assert settings.models["openai"] == "gpt-4o"

    def test_host_provider(self):
        settings = default_settings()
        with patch("today.setup.click.prompt", side_effect=["http://gpu-box:11434", "mistral"]), \
             patch("today.setup.fetch_models_for_provider", return_value=[]):
            configure_provider(settings, "ollama")
        assert settings.hosts["ollama"] == "http://gpu-box:11434"
        assert settings.models["ollama"] == "mistral"


# ---------------------------------------------------------------------------
# CLI integration
# ---------------------------------------------------------------------------

class TestSetupCLI:
    def test_setup_help(self):
        result = CliRunner().invoke(main, ["setup", "--help"])
        assert result.exit_code == 0
        assert "setup wizard" in result.output.lower()

    def test_auto_configures_every_provider(self, tmp_today_dir):
        _, fake_file = tmp_today_dir
        # auto; ollama host+model; lmstudio host+model; skip both keys; output file
        answers = "1\n\n\n\n\n\n\njournal.txt\n"
        with patch("urllib.request.urlopen", side_effect=URLError("refused")):
            result = CliRunner().invoke(main, ["setup"], input=answers)

        assert result.exit_code == 0, result.output
        assert "Skipped (no API key)." in result.output
        settings = load_config()
        assert settings.provider == "auto"
        assert settings.output_file == "journal.txt"
        assert settings.models == default_settings().models

    def test_rerun_keeps_existing_values(self):
        save_config(Settings(provider="ollama", system_prompt="Be brief"))
        with patch("urllib.request.urlopen", side_effect=URLError("refused")):
            result = CliRunner().invoke(main, ["setup"], input="\n\n\n\n")

        assert result.exit_code == 0, result.output
        settings = load_config()
        assert settings.provider == "ollama"
        assert settings.system_prompt == "Be brief"
