"""Output channel provisioning.

The channel is found by exact title among the joined dialogs, which keeps
provisioning idempotent across restarts without storing any "already created"
marker. Only when no dialog matches is a new channel created.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.config import BackoffConfig
from core.errors import NotFound, RetriesExhausted
from core.models import OutputChannel
from core.ports import MessagingClientPort

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ChannelProvisioner:
    """Resolve or create the output channel, retrying until it succeeds."""

    def __init__(
        self,
        client: MessagingClientPort,
        backoff: Optional[BackoffConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._backoff = backoff or BackoffConfig()
        self._sleep = sleep
        self._channel: Optional[OutputChannel] = None

    @property
    def channel(self) -> Optional[OutputChannel]:
        return self._channel

    async def ensure_channel(self, name: str, about: str = "") -> OutputChannel:
        """Return the channel titled ``name``, creating it if needed.

        The first resolved channel is cached for the rest of the run.
        """

        if self._channel is not None and self._channel.title == name:
            return self._channel

        failures = 0
        while True:
            try:
                channel = await self._resolve_or_create(name, about)
            except Exception:
                LOGGER.exception("Cannot provision channel %r", name)
                failures += 1
                if self._backoff.exhausted(failures):
                    raise RetriesExhausted("channel provisioning", failures)
                await self._sleep(self._backoff.delay(failures - 1))
                continue

            self._channel = channel
            return channel

    async def find_channel(self, name: str) -> Optional[OutputChannel]:
        async for dialog in self._client.iter_dialogs():
            if dialog.is_channel and dialog.title == name:
                return OutputChannel(id=dialog.id, title=dialog.title, entity=dialog.entity)
        return None

    async def _resolve_or_create(self, name: str, about: str) -> OutputChannel:
        existing = await self.find_channel(name)
        if existing is not None:
            LOGGER.info("Channel %r already exists (id=%s), skipping creation", name, existing.id)
            return existing

        channel_id = await self._client.create_channel(name, about)
        LOGGER.info("Created channel %r with id %s", name, channel_id)

        # The creation response is not trusted as the canonical entity.
        created = await self._client.find_channel_by_id(channel_id)
        if created is None:
            raise NotFound(f"Cannot find newly created channel {channel_id}")
        return created
