"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Any, Optional

from telethon import utils
from telethon.tl.custom import Message
from telethon.tl.types import MessageMediaDocument, MessageMediaPhoto

from core.models import ChatSummary, InboundMessage, MediaKind, OutputChannel


def media_kind_from_message(message: Message) -> MediaKind:
    media = getattr(message, "media", None)
    if media is None:
        return MediaKind.NONE
    if isinstance(media, MessageMediaPhoto):
        return MediaKind.PHOTO
    if isinstance(media, MessageMediaDocument):
        return MediaKind.DOCUMENT
    return MediaKind.OTHER


def _media_size(message: Message) -> Optional[int]:
    file = getattr(message, "file", None)
    size = getattr(file, "size", None)
    return size if isinstance(size, int) else None


def chat_title(entity: Any) -> str:
    """Return a human-friendly name for a chat, user or channel."""

    if entity is None:
        return "<unknown chat>"
    title = getattr(entity, "title", None)
    if title:
        return str(title)
    name = utils.get_display_name(entity)
    if name:
        return name
    return str(getattr(entity, "id", "<unknown chat>"))


def _author_name(message: Message, sender: Any) -> Optional[str]:
    # Channel posts carry a signature instead of a sender.
    post_author = getattr(message, "post_author", None)
    if post_author:
        return str(post_author)
    if sender is None:
        return None
    name = utils.get_display_name(sender)
    return name or None


async def build_inbound(message: Message) -> InboundMessage:
    """Build a core InboundMessage from a Telethon Message."""

    chat = await message.get_chat()
    sender = await message.get_sender()
    return InboundMessage(
        message_id=message.id,
        source_chat_id=message.chat_id,
        chat_name=chat_title(chat),
        author_name=_author_name(message, sender),
        media_kind=media_kind_from_message(message),
        media_size=_media_size(message),
        handle=message,
    )


def summarize_dialog(dialog: Any) -> ChatSummary:
    entity = getattr(dialog, "entity", None)
    return ChatSummary(
        id=dialog.id,
        title=chat_title(entity) if entity is not None else str(dialog.name),
        is_channel=bool(getattr(dialog, "is_channel", False)),
        entity=entity,
    )


def to_output_channel(entity: Any) -> OutputChannel:
    return OutputChannel(id=utils.get_peer_id(entity), title=chat_title(entity), entity=entity)
