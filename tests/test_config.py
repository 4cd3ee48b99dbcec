"""Tests for configuration loading, validation and the settings provider."""

from __future__ import annotations

import tempfile
from pathlib import Path
import unittest

from local_llm_chat.config import (
    DEFAULT_CONFIG,
    LlmSettings,
    Provider,
    SettingsProvider,
    load_config,
)
from local_llm_chat.exceptions import ConfigValidationError


class LoadConfigTests(unittest.TestCase):
    """Validate config merge and fallback behavior."""

    def test_missing_config_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config = load_config(config_path=Path(temp_dir) / "config.toml")
            self.assertEqual(config.llm.provider, Provider.OLLAMA)
            self.assertEqual(config.llm.api_url, DEFAULT_CONFIG["llm"]["api_url"])
            self.assertEqual(config.llm.model_name, "llama3")
            self.assertEqual(config.llm.max_history_length, 50)
            self.assertEqual(config.logging.level, DEFAULT_CONFIG["logging"]["level"])

    def test_partial_config_overrides_selected_values(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                """
[llm]
provider = "OpenAI-Compatible"
api_url = "http://localhost:1234/v1/chat/completions"
model_name = "qwen2.5"
bearer_token = "  secret  "

[workspace]
root = "~/scripts"
                """.strip(),
                encoding="utf-8",
            )
            config = load_config(config_path=config_path)
            self.assertEqual(config.llm.provider, Provider.OPENAI_COMPATIBLE)
            self.assertEqual(config.llm.model_name, "qwen2.5")
            self.assertEqual(config.llm.bearer_token, "secret")
            self.assertEqual(config.llm.temperature, 0.7)
            self.assertEqual(config.workspace.root_path, Path.home() / "scripts")

    def test_invalid_values_fallback_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                """
[llm]
temperature = 3.5
timeout_seconds = 0
                """.strip(),
                encoding="utf-8",
            )
            config = load_config(config_path=config_path)
            self.assertEqual(config.llm.temperature, 0.7)
            self.assertEqual(config.llm.timeout_seconds, 120)

    def test_unparseable_toml_falls_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text("[llm\nmodel_name = ", encoding="utf-8")
            config = load_config(config_path=config_path)
            self.assertEqual(config.llm.model_name, "llama3")


class LlmSettingsTests(unittest.TestCase):
    """Validate field bounds of the settings snapshot."""

    def test_settings_are_frozen(self) -> None:
        settings = LlmSettings()
        with self.assertRaises(Exception):
            settings.model_name = "other"  # type: ignore[misc]

    def test_bounds_are_enforced(self) -> None:
        for field, value in (
            ("temperature", -0.1),
            ("temperature", 2.1),
            ("max_tokens", 0),
            ("timeout_seconds", 0),
            ("max_history_length", 0),
            ("api_url", "localhost:11434"),
            ("model_name", "   "),
        ):
            with self.subTest(field=field, value=value):
                with self.assertRaises(Exception):
                    LlmSettings.model_validate({field: value})

    def test_temperature_edges_are_accepted(self) -> None:
        self.assertEqual(LlmSettings(temperature=0).temperature, 0)
        self.assertEqual(LlmSettings(temperature=2).temperature, 2)


class SettingsProviderTests(unittest.TestCase):
    """Validate always-fresh snapshots and validated updates."""

    def test_update_is_visible_to_next_get(self) -> None:
        provider = SettingsProvider()
        before = provider.get()
        provider.update(model_name="mistral", provider="lmstudio")
        after = provider.get()
        self.assertEqual(before.model_name, "llama3")
        self.assertEqual(after.model_name, "mistral")
        self.assertEqual(after.provider, Provider.LMSTUDIO)

    def test_invalid_update_keeps_previous_snapshot(self) -> None:
        provider = SettingsProvider(LlmSettings(model_name="phi3"))
        with self.assertRaises(ConfigValidationError):
            provider.update(temperature=5)
        self.assertEqual(provider.get().model_name, "phi3")
        self.assertEqual(provider.get().temperature, 0.7)

    def test_replace_and_reset(self) -> None:
        provider = SettingsProvider()
        provider.replace(LlmSettings(max_tokens=10))
        self.assertEqual(provider.get().max_tokens, 10)
        self.assertEqual(provider.reset().max_tokens, 2048)


if __name__ == "__main__":
    unittest.main()
