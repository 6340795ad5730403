"""Telethon implementation of the core messaging port.

Telethon's RPC failures are translated to ProtocolError here; connection and
I/O failures stay OSError so the core can tell them apart.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional

from telethon import TelegramClient, errors, events
from telethon.tl.functions.channels import CreateChannelRequest

from adapters.telegram_mapper import build_inbound, summarize_dialog, to_output_channel
from core.errors import ProtocolError
from core.models import ChatSummary, InboundMessage, OutputChannel

LOGGER = logging.getLogger(__name__)

# Telegram's limit for a single text message.
MAX_MESSAGE_CHARS = 4096


@dataclass(frozen=True)
class LoginToken:
    phone: str
    phone_code_hash: str


class TelethonMessagingClient:
    """MessagingClientPort backed by a Telethon user client."""

    def __init__(
        self,
        client: TelegramClient,
        password_provider: Optional[Callable[[], str]] = None,
    ) -> None:
        self._client = client
        self._password_provider = password_provider
        # Single hand-off slot. The client must be built with
        # sequential_updates=True so a blocked put() holds back Telethon's
        # update dispatch instead of spawning one waiting task per update.
        self._inbox: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._client.add_event_handler(self._on_new_message, events.NewMessage(incoming=True))

    @property
    def telegram(self) -> TelegramClient:
        return self._client

    async def _on_new_message(self, event) -> None:
        await self._inbox.put(event.message)

    async def connect(self) -> None:
        if not self._client.is_connected():
            await self._client.connect()

    async def is_authorized(self) -> bool:
        try:
            return await self._client.is_user_authorized()
        except errors.RPCError as exc:
            raise ProtocolError(f"Cannot check authorization: {exc}") from exc

    async def request_login_code(self, phone: str) -> LoginToken:
        try:
            sent = await self._client.send_code_request(phone)
        except errors.RPCError as exc:
            raise ProtocolError(f"Cannot request login code: {exc}") from exc
        return LoginToken(phone=phone, phone_code_hash=sent.phone_code_hash)

    async def sign_in(self, token: LoginToken, code: str) -> None:
        try:
            await self._client.sign_in(phone=token.phone, code=code, phone_code_hash=token.phone_code_hash)
        except errors.SessionPasswordNeededError as exc:
            if self._password_provider is None:
                raise ProtocolError("Two-step verification password required") from exc
            await self._sign_in_with_password()
        except errors.RPCError as exc:
            raise ProtocolError(f"Sign in failed: {exc}") from exc

    async def _sign_in_with_password(self) -> None:
        try:
            await self._client.sign_in(password=self._password_provider())
        except errors.RPCError as exc:
            raise ProtocolError(f"Two-step verification failed: {exc}") from exc

    def save_session(self) -> None:
        self._client.session.save()

    async def iter_dialogs(self) -> AsyncIterator[ChatSummary]:
        try:
            async for dialog in self._client.iter_dialogs():
                yield summarize_dialog(dialog)
        except errors.RPCError as exc:
            raise ProtocolError(f"Cannot list dialogs: {exc}") from exc

    async def create_channel(self, title: str, about: str) -> int:
        try:
            updates = await self._client(
                CreateChannelRequest(title=title, about=about, broadcast=True, megagroup=False)
            )
        except errors.RPCError as exc:
            raise ProtocolError(f"Cannot create channel {title!r}: {exc}") from exc

        chats = getattr(updates, "chats", None) or []
        if not chats:
            raise ProtocolError("Channel not found in response to create channel")
        return to_output_channel(chats[0]).id

    async def find_channel_by_id(self, channel_id: int) -> Optional[OutputChannel]:
        try:
            entity = await self._client.get_entity(channel_id)
        except ValueError:
            return None
        except errors.RPCError as exc:
            raise ProtocolError(f"Cannot resolve channel {channel_id}: {exc}") from exc
        return to_output_channel(entity)

    async def next_message(self) -> InboundMessage:
        receive = asyncio.ensure_future(self._inbox.get())
        disconnected = asyncio.ensure_future(self._client.disconnected)
        try:
            await asyncio.wait({receive, disconnected}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            disconnected.cancel()
            if not receive.done():
                receive.cancel()

        if not receive.done() or receive.cancelled():
            raise ConnectionError("Telegram client disconnected")
        return await build_inbound(receive.result())

    async def download_media(self, message: InboundMessage) -> bytes:
        try:
            payload = await self._client.download_media(message.handle, file=bytes)
        except errors.RPCError as exc:
            raise ProtocolError(f"Cannot download media of message {message.message_id}: {exc}") from exc
        if payload is None:
            raise ProtocolError(f"Message {message.message_id} has no downloadable media")
        return payload

    async def forward_message(self, channel: OutputChannel, message: InboundMessage) -> Any:
        target = channel.entity if channel.entity is not None else channel.id
        try:
            forwarded = await self._client.forward_messages(target, message.handle)
        except errors.RPCError as exc:
            raise ProtocolError(f"Cannot forward message {message.message_id}: {exc}") from exc
        if forwarded is None:
            raise ProtocolError(f"Cannot forward message with id {message.message_id}")
        LOGGER.info("Message with id %s was forwarded to %s", message.message_id, channel.title)
        return forwarded

    async def reply_silently(self, message: Any, text: str) -> Any:
        LOGGER.info("Sending response to message with id %s", message.id)
        try:
            return await message.reply(text[:MAX_MESSAGE_CHARS], silent=True)
        except errors.RPCError as exc:
            raise ProtocolError(f"Cannot reply to message {message.id}: {exc}") from exc
