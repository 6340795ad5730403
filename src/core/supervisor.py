"""Connection lifecycle for the unattended agent.

The supervisor owns the authenticate/reconnect state machine:

    DISCONNECTED -> AUTHENTICATING -> [AWAITING_CONFIRMATION_CODE] ->
    AUTHENTICATED -> RUNNING -> BACKOFF -> AUTHENTICATING -> ...

Any error raised while authenticating, provisioning or running the pipeline
sends it to BACKOFF; it never gives up unless a retry ceiling is configured.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.config import BackoffConfig, ChannelConfig
from core.errors import RetriesExhausted
from core.models import ConnectionState, UserProfile
from core.ports import CredentialProviderPort, MessagingClientPort
from core.processor import ForwardingPipeline
from core.provisioner import ChannelProvisioner

LOGGER = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Status = Callable[[str], None]


class ConnectionSupervisor:
    """Keep a session authenticated and the forwarding pipeline running."""

    def __init__(
        self,
        client: MessagingClientPort,
        credentials: CredentialProviderPort,
        profile: UserProfile,
        provisioner: ChannelProvisioner,
        pipeline: ForwardingPipeline,
        channel: ChannelConfig,
        backoff: Optional[BackoffConfig] = None,
        sleep: Sleep = asyncio.sleep,
        status: Status = print,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._profile = profile
        self._provisioner = provisioner
        self._pipeline = pipeline
        self._channel = channel
        self._backoff = backoff or BackoffConfig()
        self._sleep = sleep
        self._status = status
        self.state = ConnectionState.DISCONNECTED
        self.attempt = 0

    async def run(self) -> None:
        """Run until cancelled, or until the retry ceiling is hit."""

        while True:
            try:
                await self._authenticate()
                self._status("Connected to Telegram, listening for photos. Details go to the log file.")
                output = await self._provisioner.ensure_channel(self._channel.name, self._channel.about)
                self._enter(ConnectionState.RUNNING)
                self.attempt = 0
                await self._pipeline.run(output)
            except RetriesExhausted:
                # A provisioning ceiling is final, not another connection failure.
                self._enter(ConnectionState.DISCONNECTED)
                raise
            except Exception as exc:
                await self._back_off(exc)

    async def _authenticate(self) -> None:
        self._enter(ConnectionState.AUTHENTICATING)
        await self._client.connect()

        if not await self._client.is_authorized():
            self._enter(ConnectionState.AWAITING_CONFIRMATION_CODE)
            LOGGER.info("Additional authorization needed, asking for confirmation code")
            token = await self._client.request_login_code(self._profile.phone_number)
            code = self._credentials.provide_confirmation_code()
            await self._client.sign_in(token, code.strip())

        self._enter(ConnectionState.AUTHENTICATED)
        self._client.save_session()
        LOGGER.info("Session saved as %s", self._profile.session_file)

    async def _back_off(self, exc: Exception) -> None:
        self._enter(ConnectionState.BACKOFF)
        if self._backoff.exhausted(self.attempt + 1):
            raise RetriesExhausted("connection", self.attempt + 1) from exc

        delay = self._backoff.delay(self.attempt)
        self._status(f"Lost connection ({exc}). Retrying in {delay:g}s")
        LOGGER.warning("Lost connection (%s). Retrying in %gs", exc, delay, exc_info=exc)

        await self._sleep(delay)
        self.attempt += 1

    def _enter(self, state: ConnectionState) -> None:
        if state is not self.state:
            LOGGER.debug("Connection state %s -> %s", self.state.value, state.value)
        self.state = state
