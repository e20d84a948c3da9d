"""Local answer state for step-by-step prompts.

A :class:`StepForm` wraps one displayed :class:`StepMessage` and accumulates
the user's answer until it is finalized, then hands exactly one answer (or a
skip) to the submission callback. A new form is created for every new step
message, so state never leaks between steps.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from .errors import StepInputError
from .schemas.message import StepMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentFile:
    """A file staged for upload on a document step."""
    name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return PurePath(self.name).suffix.lstrip('.').upper()


StepAnswer = Union[str, List[str], List[DocumentFile]]
SubmitCallback = Callable[[StepAnswer, bool], Union[Awaitable[Any], Any]]


def format_rejection(extension: str, allowed: Sequence[str]) -> str:
    shown = extension or 'none'
    return f"Invalid file format: {shown}. Allowed formats: {', '.join(allowed)}"


@dataclass
class StepForm:
    """Answer state for a single step message."""
    message: StepMessage
    on_submit: SubmitCallback
    is_loading: Callable[[], bool] = lambda: False
    selected_value: Optional[str] = None
    selected_values: List[str] = field(default_factory=list)
    text_value: str = ''
    staged_files: List[DocumentFile] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    _in_flight: bool = field(default=False, init=False, repr=False)

    @property
    def input_type(self) -> str:
        return self.message.input_type

    @property
    def options(self) -> List[str]:
        """Options shown to the user; only choice steps have any."""
        if self.input_type in ('radio', 'checkbox'):
            return list(self.message.options)
        return []

    @property
    def disabled(self) -> bool:
        return self._in_flight or bool(self.is_loading())

    @property
    def can_confirm(self) -> bool:
        if self.disabled:
            return False
        if self.input_type == 'checkbox':
            return bool(self.selected_values)
        if self.input_type == 'text':
            return bool(self.text_value.strip())
        if self.input_type == 'document':
            return bool(self.staged_files)
        return False

    # --- radio -----------------------------------------------------------

    async def select(self, option: str) -> bool:
        """Pick a radio option; the choice is submitted immediately."""
        self._require('radio')
        self._require_option(option)
        if self.disabled:
            return False
        self.selected_value = option
        return await self._submit(option)

    # --- checkbox --------------------------------------------------------

    def toggle(self, option: str) -> List[str]:
        self._require('checkbox')
        self._require_option(option)
        if self.disabled:
            return list(self.selected_values)
        if option in self.selected_values:
            self.selected_values = [v for v in self.selected_values if v != option]
        else:
            self.selected_values = self.selected_values + [option]
        return list(self.selected_values)

    # --- text ------------------------------------------------------------

    def set_text(self, value: str) -> None:
        self._require('text')
        if not self.disabled:
            self.text_value = value

    # --- document --------------------------------------------------------

    def add_files(self, files: Sequence[DocumentFile]) -> List[str]:
        """Stage files, rejecting each one whose extension is not allowed.

        Returns the rejection messages for this batch; they are also kept in
        ``errors`` until the next batch.
        """
        self._require('document')
        if self.disabled:
            return []
        allowed = self.message.allowed_formats
        rejected: List[str] = []
        accepted: List[DocumentFile] = []
        for f in files:
            if allowed and f.extension not in allowed:
                rejected.append(format_rejection(f.extension, allowed))
                continue
            accepted.append(f)
        if rejected:
            logger.info("Rejected %d file(s) for step %s", len(rejected), self.message.step_number)
        self.staged_files = self.staged_files + accepted
        self.errors = rejected
        return rejected

    def remove_file(self, name: str) -> None:
        self._require('document')
        if not self.disabled:
            self.staged_files = [f for f in self.staged_files if f.name != name]

    async def skip(self) -> bool:
        """Submit an empty answer flagged as skipped, bypassing validation."""
        self._require('document')
        if self.disabled:
            return False
        self.staged_files = []
        self.errors = []
        return await self._submit('', skipped=True)

    # --- confirm ---------------------------------------------------------

    async def confirm(self) -> bool:
        """Finalize the accumulated answer for checkbox, text or document steps."""
        if self.input_type == 'radio':
            raise StepInputError("radio steps submit on selection")
        if not self.can_confirm:
            return False
        if self.input_type == 'checkbox':
            value: StepAnswer = list(self.selected_values)
            self.selected_values = []
        elif self.input_type == 'text':
            value = self.text_value
            self.text_value = ''
        else:
            value = list(self.staged_files)
            self.staged_files = []
            self.errors = []
        return await self._submit(value)

    # --- internals -------------------------------------------------------

    async def _submit(self, value: StepAnswer, skipped: bool = False) -> bool:
        self._in_flight = True
        try:
            result = self.on_submit(value, skipped)
            if inspect.isawaitable(result):
                await result
        finally:
            self._in_flight = False
        return True

    def _require(self, input_type: str) -> None:
        if self.input_type != input_type:
            raise StepInputError(
                f"step {self.message.step_number} expects {self.input_type} input, not {input_type}"
            )

    def _require_option(self, option: str) -> None:
        if option not in self.message.options:
            raise StepInputError(f"unknown option: {option!r}")
