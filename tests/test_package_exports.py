"""Tests for top-level package lazy exports."""

from __future__ import annotations

import unittest

import local_llm_chat


class PackageExportTests(unittest.TestCase):
    """Ensure __getattr__ and exported symbols behave as expected."""

    def test_lazy_exports_resolve_known_symbols(self) -> None:
        self.assertTrue(callable(local_llm_chat.load_config))
        self.assertTrue(callable(local_llm_chat.adapter_for))
        self.assertIsNotNone(local_llm_chat.ConversationController)
        self.assertIsNotNone(local_llm_chat.ChatSession)
        self.assertIsNotNone(local_llm_chat.CommandDispatcher)
        self.assertIsNotNone(local_llm_chat.SettingsProvider)
        self.assertIsNotNone(local_llm_chat.HttpTransport)
        self.assertEqual(local_llm_chat.Role.USER.value, "user")
        self.assertEqual(repr(local_llm_chat.CLEAR_CONVERSATION), "CLEAR_CONVERSATION")

    def test_all_lists_every_export(self) -> None:
        for name in local_llm_chat.__all__:
            self.assertIsNotNone(getattr(local_llm_chat, name))

    def test_unknown_symbol_raises_attribute_error(self) -> None:
        with self.assertRaises(AttributeError):
            getattr(local_llm_chat, "THIS_DOES_NOT_EXIST")


if __name__ == "__main__":
    unittest.main()
