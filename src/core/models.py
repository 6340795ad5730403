"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to Telethon or Tesseract types. Chat and channel ids are Telegram
"marked" peer ids so a message's source chat can be compared directly with
the output channel.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from core.errors import VaultError


@dataclass(frozen=True)
class UserProfile:
    """Credentials and target channel for a single run."""

    api_id: int
    api_hash: str
    phone_number: str
    session_file: str
    channel_name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "phone_number", "".join(self.phone_number.split()))

    def to_json(self) -> str:
        payload = asdict(self)
        payload["session_filename"] = payload.pop("session_file")
        return json.dumps(payload)

    @classmethod
    def from_json(cls, raw: str) -> "UserProfile":
        """Decode a profile; the keys match the earlier tool's profile format."""

        try:
            payload = json.loads(raw)
            return cls(
                api_id=int(payload["api_id"]),
                api_hash=str(payload["api_hash"]),
                phone_number=str(payload["phone_number"]),
                session_file=str(payload["session_filename"]),
                channel_name=str(payload["channel_name"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise VaultError(f"Malformed profile: {exc}") from exc


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    AUTHENTICATING = "authenticating"
    AWAITING_CONFIRMATION_CODE = "awaiting_confirmation_code"
    AUTHENTICATED = "authenticated"
    RUNNING = "running"
    BACKOFF = "backoff"


class MediaKind(Enum):
    NONE = "none"
    PHOTO = "photo"
    DOCUMENT = "document"
    OTHER = "other"


@dataclass(frozen=True)
class OutputChannel:
    """The resolved destination channel; read-only once provisioned."""

    id: int
    title: str
    entity: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ChatSummary:
    """One entry of the dialog listing."""

    id: int
    title: str
    is_channel: bool
    entity: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class InboundMessage:
    """Minimal message context used by the forwarding pipeline."""

    message_id: int
    source_chat_id: int
    chat_name: str
    author_name: Optional[str]
    media_kind: MediaKind
    media_size: Optional[int] = None
    handle: Any = field(default=None, compare=False, repr=False)

    @property
    def media_present(self) -> bool:
        return self.media_kind is not MediaKind.NONE


@dataclass(frozen=True)
class RecognitionResult:
    text: str
    mean_confidence: float


class SkipReason(Enum):
    LOW_CONFIDENCE = "low confidence"
    NO_TEXT = "no text"
    RECOGNITION_FAILED = "recognition failed"
    DOWNLOAD_FAILED = "download failed"
    TOO_LARGE = "media too large"


@dataclass(frozen=True)
class Skip:
    reason: SkipReason


@dataclass(frozen=True)
class Forward:
    text: str


ForwardDecision = Union[Skip, Forward]
