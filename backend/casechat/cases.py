"""Case list for the signed-in user and entry points into case chats."""

import logging
from typing import Any, List, Optional

from .chat_session import ChatSession
from .conversation import ConversationStore
from .schemas.message import Case, UserDetails
from .services.webhook_client import WebhookClient
from .validation import validate_new_case

logger = logging.getLogger(__name__)


class CaseDirectory:
    """Read-through cache of the user's cases.

    ``refresh()`` fetches user details and replaces the cached list; created
    cases are appended locally without a refetch.
    """

    def __init__(self, client: WebhookClient, store: Optional[ConversationStore] = None):
        self.client = client
        self.store = store or ConversationStore()
        self.user: Optional[UserDetails] = None
        self._cases: List[Case] = []

    @property
    def cases(self) -> List[Case]:
        return list(self._cases)

    def find(self, case_id: Any) -> Optional[Case]:
        for case in self._cases:
            if str(case.case_id) == str(case_id):
                return case
        return None

    async def refresh(self) -> List[Case]:
        details = await self.client.user_details()
        self.user = details
        self._cases = list(details.cases)
        logger.info("Loaded %d case(s) for user %s", len(self._cases), details.id)
        return self.cases

    async def open_case(self, case_id: Any) -> ChatSession:
        """Load a case's stored conversation and return a session seeded with it."""
        history = await self.client.load_case_conversation(case_id)
        case = self.find(case_id)
        return ChatSession(
            self.client,
            case_id,
            case_name=case.name if case else None,
            case_type=case.type if case else None,
            history=history,
            store=self.store,
        )

    async def create_case(self, name: str, case_type: str) -> ChatSession:
        """Create a case and return a fresh session; its bootstrap starts the chat."""
        validate_new_case(name, case_type)
        case = await self.client.create_case(name, case_type)
        self._cases = self._cases + [case]
        logger.info("Created case %s (%s)", case.case_id, case.type)
        return ChatSession(
            self.client,
            case.case_id,
            case_name=case.name or name,
            case_type=case.type or case_type,
            store=self.store,
        )
