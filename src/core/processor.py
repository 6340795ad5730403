"""Core forwarding pipeline.

This module is integration-agnostic. It only relies on the messaging and
recognizer ports, and enforces a strict order per message:

1) Wait for the next photo that did not come from the output channel
2) Download the media into memory
3) Run text recognition
4) Gate on mean confidence
5) Forward the original message, then reply silently with the text

Exactly one message is in flight at a time.
"""

from __future__ import annotations

import asyncio
import logging

from core.config import PipelineConfig
from core.errors import RecognitionError, RelayError
from core.models import (
    Forward,
    ForwardDecision,
    InboundMessage,
    MediaKind,
    OutputChannel,
    RecognitionResult,
    Skip,
    SkipReason,
)
from core.ports import MessagingClientPort, TextRecognizerPort

LOGGER = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "<unknown>"


def is_candidate(message: InboundMessage, channel: OutputChannel) -> bool:
    """Photos only, and never anything posted in the output channel itself."""

    return message.media_kind is MediaKind.PHOTO and message.source_chat_id != channel.id


def decide(result: RecognitionResult, min_confidence: float) -> ForwardDecision:
    if result.mean_confidence < min_confidence:
        return Skip(SkipReason.LOW_CONFIDENCE)
    text = result.text.strip()
    # Telegram rejects empty messages, so there would be nothing to reply with.
    if not text:
        return Skip(SkipReason.NO_TEXT)
    return Forward(text)


class ForwardingPipeline:
    """Relays recognized photos into the output channel."""

    def __init__(
        self,
        client: MessagingClientPort,
        recognizer: TextRecognizerPort,
        config: PipelineConfig,
    ) -> None:
        self._client = client
        self._recognizer = recognizer
        self._config = config

    async def run(self, channel: OutputChannel) -> None:
        """Process messages until an error propagates to the supervisor."""

        LOGGER.info("Start to listen for messages, output channel %r", channel.title)
        while True:
            message = await self._client.next_message()
            if not is_candidate(message, channel):
                continue
            LOGGER.info("Received photo message %s from %s", message.message_id, message.chat_name)
            await self.handle(message, channel)

    async def handle(self, message: InboundMessage, channel: OutputChannel) -> ForwardDecision:
        """Run one candidate message through download, OCR and forwarding."""

        limit = self._config.max_media_bytes
        if limit is not None and message.media_size is not None and message.media_size > limit:
            return self._skip(message, SkipReason.TOO_LARGE, f"{message.media_size} bytes")

        # I/O and connection errors propagate: a reconnect is cheaper than
        # guessing whether the session is still usable.
        try:
            payload = await self._client.download_media(message)
        except OSError:
            raise
        except RelayError as exc:
            return self._skip(message, SkipReason.DOWNLOAD_FAILED, str(exc))

        try:
            result = await asyncio.to_thread(self._recognizer.recognize, payload, self._config.language)
        except RecognitionError as exc:
            return self._skip(message, SkipReason.RECOGNITION_FAILED, str(exc))

        decision = decide(result, self._config.min_confidence)
        if isinstance(decision, Skip):
            return self._skip(message, decision.reason, f"{result.mean_confidence:g}")

        # Forward first; if the reply fails the copy stays unannotated and the
        # error goes up to the supervisor.
        forwarded = await self._client.forward_message(channel, message)
        await self._client.reply_silently(forwarded, decision.text)

        LOGGER.info(
            "Message %s from chat %s, from user %s successfully forwarded to %s",
            message.message_id,
            message.chat_name,
            message.author_name or UNKNOWN_AUTHOR,
            channel.title,
        )
        return decision

    def _skip(self, message: InboundMessage, reason: SkipReason, detail: str) -> Skip:
        LOGGER.info(
            "Skipped message %s from %s: %s (%s)",
            message.message_id,
            message.chat_name,
            reason.value,
            detail,
        )
        return Skip(reason)
