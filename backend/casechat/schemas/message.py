"""Message protocol shared between the workflow backend and the chat client.

Assistant turns arrive as a ``{type, content}`` envelope. When the content
structurally looks like a step message it is converted into a typed
:class:`StepMessage`; everything else stays plain text (or an object such as
``{"url": ...}`` for image/video turns).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

InputType = Literal['radio', 'checkbox', 'text', 'document']
MessageRole = Literal['user', 'assistant']
ContentType = Literal['text', 'image', 'video', 'step']

CHOICE_INPUT_TYPES = ('radio', 'checkbox')
STEP_REQUIRED_KEYS = ('step_number', 'step_title', 'message', 'input_type')

UNPROCESSABLE_REPLY = "I couldn't process your message. Please try again."
ERROR_REPLY = "Sorry, I encountered an error. Please try again."


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StepMessage(BaseModel):
    """A structured prompt requiring a typed answer."""
    model_config = ConfigDict(frozen=True)

    step_number: str
    step_title: str
    message: str
    options: List[str] = Field(default_factory=list)
    input_type: InputType
    required_formats: Optional[List[str]] = None

    @field_validator('step_number', mode='before')
    @classmethod
    def _coerce_step_number(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @model_validator(mode='after')
    def _check_options(self) -> 'StepMessage':
        if self.input_type in CHOICE_INPUT_TYPES and not self.options:
            raise ValueError(f"options must not be empty for input_type={self.input_type}")
        return self

    @property
    def allowed_formats(self) -> List[str]:
        """Upper-cased extension tokens accepted by a document step."""
        return [fmt.strip().lstrip('.').upper() for fmt in (self.required_formats or []) if fmt.strip()]


def is_step_message(content: Any) -> bool:
    """Structural check: does ``content`` look like a step message?

    Never raises. Any mapping that carries the step keys and a list-valued
    ``options`` qualifies, whatever else it contains.
    """
    if not isinstance(content, Mapping):
        return False
    if not all(key in content for key in STEP_REQUIRED_KEYS):
        return False
    return isinstance(content.get('options'), list)


def to_step_message(content: Any) -> Optional[StepMessage]:
    """Convert a structurally matching payload into a :class:`StepMessage`.

    Returns None when the structural check fails or the payload does not pass
    schema validation (unknown input type, empty options on a choice step).
    """
    if isinstance(content, StepMessage):
        return content
    if not is_step_message(content):
        return None
    try:
        return StepMessage.model_validate(dict(content))
    except ValidationError as e:
        logger.warning("Step-shaped payload failed validation: %s", e.errors())
        return None


MessageContent = Union[StepMessage, str, Dict[str, Any]]


class ChatMessage(BaseModel):
    """One turn in a case conversation. Immutable once created."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    role: MessageRole
    content: MessageContent
    time: str = Field(default_factory=utc_now_iso)
    content_type: ContentType = Field('text', alias='contentType', validate_default=True)
    case_type: Optional[str] = Field(None, alias='caseType')

    @field_validator('content', mode='before')
    @classmethod
    def _classify_content(cls, v: Any) -> Any:
        step = to_step_message(v)
        if step is not None:
            return step
        if v is None:
            return ''
        return v

    @field_validator('content_type', mode='before')
    @classmethod
    def _resolve_content_type(cls, v: Any, info: ValidationInfo) -> Any:
        # contentType is 'step' exactly when the content is a step message.
        if isinstance(info.data.get('content'), StepMessage):
            return 'step'
        if v not in ('text', 'image', 'video'):
            return 'text'
        return v

    @property
    def is_step(self) -> bool:
        return self.content_type == 'step'

    @property
    def step(self) -> Optional[StepMessage]:
        return self.content if isinstance(self.content, StepMessage) else None

    def display_text(self) -> str:
        """Best-effort plain text for rendering the turn."""
        content = self.content
        if isinstance(content, StepMessage):
            return content.message
        if isinstance(content, str):
            return content
        if self.content_type in ('image', 'video'):
            return str(content.get('url') or '')
        return str(content.get('message') or '')

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Conversation(BaseModel):
    """Ordered, append-only list of turns for one case."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str
    messages: Tuple[ChatMessage, ...] = ()
    case_type: Optional[str] = Field(None, alias='caseType')

    def with_message(self, message: ChatMessage) -> 'Conversation':
        return self.model_copy(update={'messages': self.messages + (message,)})

    @property
    def last_message(self) -> Optional[ChatMessage]:
        return self.messages[-1] if self.messages else None


class Case(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    case_id: Union[int, str] = Field(alias='caseId')
    name: str
    type: str = ''
    created_on: Optional[str] = Field(None, alias='createdOn')
    last_modified_on: Optional[str] = Field(None, alias='lastModifiedOn')


class UserDetails(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: Union[int, str, None] = None
    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    email: Optional[str] = None
    cases: List[Case] = Field(default_factory=list)

    @field_validator('cases', mode='before')
    @classmethod
    def _null_cases(cls, v: Any) -> Any:
        return v or []


def envelope_to_message(data: Any, case_type: Optional[str] = None) -> ChatMessage:
    """Turn a backend ``{type, content}`` envelope into an assistant turn.

    The payload is ``content.message`` when present, otherwise ``content``.
    Step-shaped payloads become ``contentType=step``; anything else keeps the
    declared type (default text) with a fallback text when empty.
    """
    data = data if isinstance(data, Mapping) else {}
    content = data.get('content')
    payload = None
    # A bare step carries its own string 'message'; don't unwrap it.
    if isinstance(content, Mapping) and not is_step_message(content):
        payload = content.get('message')
    if not payload:
        payload = content
    reply_case_type = data.get('caseType') or case_type

    step = to_step_message(payload)
    if step is not None:
        return ChatMessage(role='assistant', content=step, content_type='step', case_type=reply_case_type)

    declared = data.get('type') or 'text'
    if declared not in ('text', 'image', 'video'):
        declared = 'text'
    reply = payload or UNPROCESSABLE_REPLY
    if not isinstance(reply, (str, Mapping)):
        reply = str(reply)
    return ChatMessage(
        role='assistant',
        content=reply,
        content_type=declared,
        case_type=reply_case_type,
    )


def error_message(case_type: Optional[str] = None) -> ChatMessage:
    return ChatMessage(role='assistant', content=ERROR_REPLY, content_type='text', case_type=case_type)
