from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from core.config import BackoffConfig
from core.errors import ProtocolError, RetriesExhausted
from core.models import ChatSummary, OutputChannel
from core.provisioner import ChannelProvisioner


class FakeClient:
    def __init__(self, dialogs: Optional[list[ChatSummary]] = None) -> None:
        self.dialogs = list(dialogs or [])
        self.created: list[tuple[str, str]] = []
        self.lookups: list[int] = []
        self.dialog_failures = 0
        self.hide_created = 0
        self._next_id = -1001000

    async def iter_dialogs(self):
        if self.dialog_failures:
            self.dialog_failures -= 1
            raise ProtocolError("dialogs unavailable")
        for dialog in self.dialogs:
            yield dialog

    async def create_channel(self, title: str, about: str) -> int:
        self.created.append((title, about))
        self._next_id -= 1
        self.dialogs.append(ChatSummary(id=self._next_id, title=title, is_channel=True))
        return self._next_id

    async def find_channel_by_id(self, channel_id: int) -> Optional[OutputChannel]:
        self.lookups.append(channel_id)
        if self.hide_created:
            self.hide_created -= 1
            return None
        for dialog in self.dialogs:
            if dialog.id == channel_id:
                return OutputChannel(id=dialog.id, title=dialog.title)
        return None


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def test_existing_channel_is_never_recreated() -> None:
    client = FakeClient([ChatSummary(id=-1009, title="X", is_channel=True)])
    provisioner = ChannelProvisioner(client)

    first = asyncio.run(provisioner.ensure_channel("X", ""))
    second = asyncio.run(provisioner.ensure_channel("X", ""))

    assert first == OutputChannel(id=-1009, title="X")
    assert second == first
    assert client.created == []


def test_fresh_provisioner_finds_channel_by_title_after_restart() -> None:
    client = FakeClient()
    asyncio.run(ChannelProvisioner(client).ensure_channel("X", ""))
    asyncio.run(ChannelProvisioner(client).ensure_channel("X", ""))
    assert len(client.created) == 1


def test_title_match_is_exact_and_channels_only() -> None:
    client = FakeClient(
        [
            ChatSummary(id=1, title="X", is_channel=False),
            ChatSummary(id=-1002, title="x", is_channel=True),
            ChatSummary(id=-1003, title="X ", is_channel=True),
        ]
    )
    channel = asyncio.run(ChannelProvisioner(client).ensure_channel("X", "about text"))

    assert client.created == [("X", "about text")]
    assert client.lookups == [channel.id]
    assert channel.title == "X"


def test_retries_with_backoff_until_dialogs_load() -> None:
    client = FakeClient([ChatSummary(id=-1009, title="X", is_channel=True)])
    client.dialog_failures = 3
    sleep = RecordingSleep()
    provisioner = ChannelProvisioner(client, BackoffConfig(max_exponent=1), sleep=sleep)

    channel = asyncio.run(provisioner.ensure_channel("X"))

    assert channel.id == -1009
    assert sleep.delays == [1, 2, 2]


def test_missing_created_channel_is_retried() -> None:
    client = FakeClient()
    client.hide_created = 1
    sleep = RecordingSleep()
    provisioner = ChannelProvisioner(client, sleep=sleep)

    channel = asyncio.run(provisioner.ensure_channel("X"))

    # Second attempt finds the channel created by the first one by title.
    assert len(client.created) == 1
    assert channel.title == "X"
    assert sleep.delays == [1]


def test_attempt_ceiling_raises() -> None:
    client = FakeClient()
    client.dialog_failures = 10
    sleep = RecordingSleep()
    provisioner = ChannelProvisioner(client, BackoffConfig(max_attempts=3), sleep=sleep)

    with pytest.raises(RetriesExhausted):
        asyncio.run(provisioner.ensure_channel("X"))
    assert len(sleep.delays) == 2
    assert provisioner.channel is None
