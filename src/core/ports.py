"""Ports (interfaces) used by the core.

Ports define the minimal contracts for the chat backend, the text recognizer
and the interactive credential source so that the core can be reused with
different backends and driven by fakes in tests.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Optional, Protocol

from core.models import ChatSummary, InboundMessage, OutputChannel, RecognitionResult


class MessagingClientPort(Protocol):
    """Chat backend operations required by the supervisor, provisioner and pipeline."""

    async def connect(self) -> None:
        ...

    async def is_authorized(self) -> bool:
        ...

    async def request_login_code(self, phone: str) -> Any:
        ...

    async def sign_in(self, token: Any, code: str) -> None:
        ...

    def save_session(self) -> None:
        ...

    def iter_dialogs(self) -> AsyncIterator[ChatSummary]:
        ...

    async def create_channel(self, title: str, about: str) -> int:
        ...

    async def find_channel_by_id(self, channel_id: int) -> Optional[OutputChannel]:
        ...

    async def next_message(self) -> InboundMessage:
        """Suspend until the next inbound message arrives."""
        ...

    async def download_media(self, message: InboundMessage) -> bytes:
        ...

    async def forward_message(self, channel: OutputChannel, message: InboundMessage) -> Any:
        ...

    async def reply_silently(self, message: Any, text: str) -> Any:
        ...


class TextRecognizerPort(Protocol):
    """Blocking OCR call; the pipeline runs it off the event loop."""

    def recognize(self, image: bytes, language: str) -> RecognitionResult:
        ...


class CredentialProviderPort(Protocol):
    """Interactive source of login codes and passwords."""

    def provide_confirmation_code(self) -> str:
        ...

    def provide_password(self, prompt: str = "Password: ") -> str:
        ...
