"""Per-case chat session: bootstrap, answer dispatch and reply reconciliation.

Flow (happy path):
1. ``bootstrap()`` seeds the conversation from loaded history, or asks the
   backend to initiate the chat and records its first reply.
2. The user answers the active step (or types free text).
3. The answer is recorded as a user turn straight away, then POSTed to
   ``/ai-resp``; the reply envelope becomes the next assistant turn.

Only one submission is in flight at a time. Failures never reach the user
with raw detail: they become a fixed assistant turn and the session is ready
for the next attempt.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from .conversation import (
    ConversationStore,
    answer_display_text,
    is_file_answer,
    join_answer,
    user_message,
)
from .schemas.message import ChatMessage, Conversation, envelope_to_message, error_message
from .services.webhook_client import WebhookClient, case_display_name
from .step_form import StepAnswer, StepForm

logger = logging.getLogger(__name__)


class ChatSession:
    def __init__(
        self,
        client: WebhookClient,
        case_id: Any,
        case_name: Optional[str] = None,
        case_type: Optional[str] = None,
        history: Optional[Sequence[ChatMessage]] = None,
        store: Optional[ConversationStore] = None,
    ):
        self.client = client
        self.case_id = case_id
        self.case_name = case_name
        self.case_type = case_type
        self.conversation_id = f"case-{case_id}"
        self.store = store or ConversationStore()
        self.is_loading = False
        self.is_initializing = True
        self._history: List[ChatMessage] = list(history or [])
        self._generation = 0
        self._form: Optional[StepForm] = None
        self._form_index: Optional[int] = None

    @property
    def title(self) -> str:
        return case_display_name(self.case_id, self.case_name)

    @property
    def conversation(self) -> Optional[Conversation]:
        return self.store.get(self.conversation_id)

    @property
    def messages(self) -> List[ChatMessage]:
        conv = self.conversation
        return list(conv.messages) if conv else []

    @property
    def accepts_free_text(self) -> bool:
        """Free text is offered unless the assistant is waiting on a step."""
        conv = self.conversation
        if conv is None:
            return False
        last = conv.last_message
        return last is None or not last.is_step

    @property
    def active_step_form(self) -> Optional[StepForm]:
        """Answer state for the trailing step message, if any.

        A fresh form is built whenever a new step message becomes the last
        turn, so selections never carry over between steps.
        """
        messages = self.messages
        if not messages or not messages[-1].is_step:
            self._form = None
            self._form_index = None
            return None
        index = len(messages) - 1
        if self._form is None or self._form_index != index:
            self._form = StepForm(
                message=messages[-1].step,
                on_submit=self.submit_answer,
                is_loading=lambda: self.is_loading,
            )
            self._form_index = index
        return self._form

    # --- lifecycle -------------------------------------------------------

    async def bootstrap(self) -> Conversation:
        generation = self._generation
        messages: List[ChatMessage] = list(self._history)
        try:
            if not messages:
                try:
                    data = await self.client.initiate_chat(self.case_id, self.case_name, self.case_type)
                    messages = [envelope_to_message(data, self.case_type)]
                except Exception:
                    # Fail open: the case still opens, just without history.
                    logger.exception("Error initializing chat for case %s", self.case_id)
                    messages = []
            conversation = Conversation(
                id=self.conversation_id,
                title=self.title,
                messages=tuple(messages),
                case_type=self.case_type,
            )
            if generation != self._generation:
                logger.info("Discarding bootstrap of case %s; session was left", self.case_id)
                return conversation
            self.store.put(conversation)
            return conversation
        finally:
            self.is_initializing = False

    def leave(self) -> None:
        """Detach from the case; replies still in flight will be dropped."""
        self._generation += 1
        logger.info("Left chat for case %s (generation=%d)", self.case_id, self._generation)

    # --- submission ------------------------------------------------------

    async def submit_answer(self, value: StepAnswer, skipped: bool = False) -> bool:
        """Dispatch a finalized step answer. Used as the step form callback."""
        display = answer_display_text(value, skipped)
        if is_file_answer(value):
            documents = list(value)

            def send():
                return self.client.send_documents(self.case_id, self.case_name, self.case_type, documents)
        else:
            text = join_answer(value)

            def send():
                return self.client.send_text(self.case_id, self.case_name, self.case_type, text)
        return await self._dispatch(display, send)

    async def send_message(self, text: str) -> bool:
        """Send free text typed into the chat input. Blank input is ignored."""
        if not text or not text.strip():
            return False
        if not self.accepts_free_text:
            logger.info("Free text ignored while a step is awaiting an answer")
            return False
        return await self._dispatch(text, lambda: self.client.send_text(
            self.case_id, self.case_name, self.case_type, text
        ))

    async def _dispatch(self, display_text: str, send: Callable[[], Awaitable[Any]]) -> bool:
        if self.is_loading or self.conversation is None:
            return False
        generation = self._generation
        conversation_id = self.conversation_id

        self.store.append(conversation_id, user_message(display_text, self.case_type))
        self.is_loading = True
        try:
            try:
                data = await send()
                reply = envelope_to_message(data, self.case_type)
            except Exception:
                logger.exception("Error sending message for case %s", self.case_id)
                reply = error_message(self.case_type)
            if generation != self._generation:
                logger.info("Dropping stale reply for case %s", self.case_id)
                return True
            self.store.append(conversation_id, reply)
        finally:
            self.is_loading = False
        return True
