from __future__ import annotations

import asyncio

from telethon.tl.types import Channel, ChatPhotoEmpty, MessageMediaDocument, MessageMediaPhoto, User

from adapters.telegram_mapper import build_inbound, chat_title, summarize_dialog
from core.models import MediaKind


class DummyChat:
    def __init__(self, title: "str | None" = None) -> None:
        self.title = title
        self.id = 5


class DummyFile:
    def __init__(self, size: "int | None") -> None:
        self.size = size


class DummyMessage:
    def __init__(
        self,
        *,
        chat_id: int,
        message_id: int,
        chat=None,
        sender=None,
        media=None,
        post_author: "str | None" = None,
        size: "int | None" = None,
    ) -> None:
        self.chat_id = chat_id
        self.id = message_id
        self.media = media
        self.post_author = post_author
        self.file = DummyFile(size) if media is not None else None
        self._chat = chat
        self._sender = sender

    async def get_chat(self):
        return self._chat

    async def get_sender(self):
        return self._sender


class DummyDialog:
    def __init__(self, dialog_id: int, entity, is_channel: bool) -> None:
        self.id = dialog_id
        self.entity = entity
        self.is_channel = is_channel
        self.name = "fallback"


def _user(first: str, last: "str | None" = None) -> User:
    return User(id=42, first_name=first, last_name=last)


def test_photo_message_maps_chat_and_author() -> None:
    message = DummyMessage(
        chat_id=-1005,
        message_id=10,
        chat=DummyChat(title="News"),
        sender=_user("Alice", "Smith"),
        media=MessageMediaPhoto(),
        size=2048,
    )
    inbound = asyncio.run(build_inbound(message))

    assert inbound.message_id == 10
    assert inbound.source_chat_id == -1005
    assert inbound.chat_name == "News"
    assert inbound.author_name == "Alice Smith"
    assert inbound.media_kind is MediaKind.PHOTO
    assert inbound.media_present
    assert inbound.media_size == 2048
    assert inbound.handle is message


def test_post_author_wins_over_sender() -> None:
    message = DummyMessage(
        chat_id=-1005,
        message_id=11,
        chat=DummyChat(title="News"),
        sender=None,
        media=MessageMediaPhoto(),
        post_author="Editor",
    )
    assert asyncio.run(build_inbound(message)).author_name == "Editor"


def test_document_and_text_messages_are_not_photos() -> None:
    document = DummyMessage(chat_id=1, message_id=1, chat=DummyChat("A"), media=MessageMediaDocument())
    text = DummyMessage(chat_id=1, message_id=2, chat=DummyChat("A"))

    assert asyncio.run(build_inbound(document)).media_kind is MediaKind.DOCUMENT
    inbound = asyncio.run(build_inbound(text))
    assert inbound.media_kind is MediaKind.NONE
    assert not inbound.media_present
    assert inbound.author_name is None


def test_private_chat_uses_display_name() -> None:
    assert chat_title(_user("Bob")) == "Bob"
    assert chat_title(None) == "<unknown chat>"


def test_summarize_dialog_marks_channels() -> None:
    channel = Channel(id=123, title="OCR output", photo=ChatPhotoEmpty(), date=None)
    summary = summarize_dialog(DummyDialog(-100123, channel, is_channel=True))

    assert summary.id == -100123
    assert summary.title == "OCR output"
    assert summary.is_channel
