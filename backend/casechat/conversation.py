"""Conversation state for case chats.

State is an ordered list of :class:`Conversation` values. All changes go
through :meth:`ConversationStore.update`, which hands the *current* state to a
pure updater, so an append computed late still lands on top of every append
committed before it.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from .schemas.message import ChatMessage, Conversation
from .step_form import DocumentFile, StepAnswer

logger = logging.getLogger(__name__)

SKIP_DISPLAY_TEXT = "Skip for now"

Updater = Callable[[List[Conversation]], List[Conversation]]


def is_file_answer(value: StepAnswer) -> bool:
    return isinstance(value, list) and bool(value) and isinstance(value[0], DocumentFile)


def join_answer(value: StepAnswer) -> str:
    """Flatten an answer to the text sent as ``content.message``."""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return value


def answer_display_text(value: StepAnswer, skipped: bool = False) -> str:
    """Text of the user turn recorded for a finalized answer."""
    if skipped:
        return SKIP_DISPLAY_TEXT
    if is_file_answer(value):
        return "Uploaded: " + ", ".join(f.name for f in value)  # type: ignore[union-attr]
    return join_answer(value)


def user_message(text: str, case_type: Optional[str] = None) -> ChatMessage:
    return ChatMessage(role='user', content=text, content_type='text', case_type=case_type)


def append_message(
    conversations: Sequence[Conversation], conversation_id: str, message: ChatMessage
) -> List[Conversation]:
    """Return a new state with ``message`` appended to one conversation."""
    return [
        conv.with_message(message) if conv.id == conversation_id else conv
        for conv in conversations
    ]


def add_conversation(conversations: Sequence[Conversation], conversation: Conversation) -> List[Conversation]:
    """Add ``conversation``, replacing any existing one with the same id."""
    kept = [c for c in conversations if c.id != conversation.id]
    return kept + [conversation]


class ConversationStore:
    """Owner of the committed conversation list."""

    def __init__(self, conversations: Optional[Sequence[Conversation]] = None):
        self._conversations: List[Conversation] = list(conversations or [])

    @property
    def conversations(self) -> List[Conversation]:
        return list(self._conversations)

    def get(self, conversation_id: str) -> Optional[Conversation]:
        for conv in self._conversations:
            if conv.id == conversation_id:
                return conv
        return None

    def update(self, updater: Updater) -> List[Conversation]:
        self._conversations = list(updater(list(self._conversations)))
        return self.conversations

    def append(self, conversation_id: str, message: ChatMessage) -> None:
        if self.get(conversation_id) is None:
            logger.warning("Append to unknown conversation %s ignored", conversation_id)
            return
        self.update(lambda state: append_message(state, conversation_id, message))

    def put(self, conversation: Conversation) -> None:
        self.update(lambda state: add_conversation(state, conversation))
