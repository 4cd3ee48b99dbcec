"""Tests for bounded history and per-turn message assembly."""

from __future__ import annotations

import unittest

from local_llm_chat.session import (
    WELCOME_MESSAGE,
    ChatMessage,
    ChatSession,
    Role,
)


def _session_with(count: int) -> ChatSession:
    session = ChatSession()
    for index in range(count):
        role = Role.USER if index % 2 == 0 else Role.ASSISTANT
        session.append(role, f"message {index}")
    return session


class TrimTests(unittest.TestCase):
    """Validate oldest-first trimming."""

    def test_trim_keeps_most_recent_in_order(self) -> None:
        session = _session_with(7)
        removed = session.trim(4)
        self.assertEqual(removed, 3)
        self.assertEqual(
            [m.content for m in session.messages],
            ["message 3", "message 4", "message 5", "message 6"],
        )

    def test_trim_under_limit_is_noop(self) -> None:
        session = _session_with(3)
        self.assertEqual(session.trim(3), 0)
        self.assertEqual(len(session), 3)

    def test_trim_ignores_role(self) -> None:
        session = ChatSession()
        session.append(Role.SYSTEM, "prompt")
        session.append(Role.USER, "hi")
        session.append(Role.ASSISTANT, "hello")
        session.trim(2)
        self.assertEqual([m.role for m in session.messages], [Role.USER, Role.ASSISTANT])


class AppendRemoveTests(unittest.TestCase):
    """Validate handles and clearing."""

    def test_remove_uses_identity(self) -> None:
        session = ChatSession()
        first = session.append("assistant", "Thinking...")
        second = session.append("assistant", "Thinking...")
        self.assertTrue(session.remove(second))
        self.assertEqual(len(session), 1)
        self.assertIs(session.messages[0], first)
        self.assertFalse(session.remove(second))

    def test_messages_are_immutable(self) -> None:
        message = ChatSession().append(Role.USER, "hi")
        with self.assertRaises(Exception):
            message.content = "changed"  # type: ignore[misc]

    def test_clear_empties_everything(self) -> None:
        session = _session_with(5)
        session.clear()
        self.assertEqual(session.messages, [])

    def test_invalid_role_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ChatSession().append("tool", "x")


class AssembleForTurnTests(unittest.TestCase):
    """Validate system prompt injection and bootstrap filtering."""

    def test_prompt_is_prepended_when_no_system_message(self) -> None:
        session = ChatSession()
        session.append(Role.SYSTEM, WELCOME_MESSAGE)
        session.append(Role.USER, "hello")
        assembled = session.assemble_for_turn("Be brief.")
        self.assertEqual(
            assembled,
            [ChatMessage(Role.SYSTEM, "Be brief."), ChatMessage(Role.USER, "hello")],
        )

    def test_existing_system_message_is_not_duplicated(self) -> None:
        session = ChatSession()
        session.append(Role.SYSTEM, "You are a DBA.")
        session.append(Role.USER, "hello")
        assembled = session.assemble_for_turn("Be brief.")
        self.assertEqual([m.content for m in assembled], ["You are a DBA.", "hello"])
        self.assertEqual(sum(m.role is Role.SYSTEM for m in assembled), 1)

    def test_multiple_system_messages_fold_into_one(self) -> None:
        session = ChatSession()
        session.append(Role.USER, "/read a.sql")
        session.append(Role.SYSTEM, "File: a.sql\n\nSELECT 1;")
        session.append(Role.USER, "/read b.sql")
        session.append(Role.SYSTEM, "File: b.sql\n\nSELECT 2;")
        session.append(Role.USER, "compare them")
        assembled = session.assemble_for_turn("Be brief.")
        self.assertEqual(
            [m.role for m in assembled],
            [Role.USER, Role.SYSTEM, Role.USER, Role.USER],
        )
        self.assertEqual(
            assembled[1].content,
            "File: a.sql\n\nSELECT 1;\n\nFile: b.sql\n\nSELECT 2;",
        )

    def test_assembly_does_not_mutate_history(self) -> None:
        session = ChatSession()
        session.append(Role.SYSTEM, WELCOME_MESSAGE)
        session.append(Role.USER, "hello")
        session.assemble_for_turn("Be brief.")
        self.assertEqual(len(session), 2)
        self.assertTrue(session.messages[0].is_bootstrap)

    def test_to_wire_uses_plain_strings(self) -> None:
        message = ChatMessage(Role.ASSISTANT, "hi")
        self.assertEqual(message.to_wire(), {"role": "assistant", "content": "hi"})


if __name__ == "__main__":
    unittest.main()
