"""Telegram client factory for photoscope.

We explicitly manage the client's lifecycle (the supervisor connects and
reconnects) so it is obvious when the session is created and when it ends.
This avoids implicit context-manager behavior for a long-running agent.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from dotenv import load_dotenv
from telethon import TelegramClient

from adapters.telegram_client import TelethonMessagingClient
from core.models import UserProfile


def load_profile_from_env() -> Optional[UserProfile]:
    """Build a profile from environment variables, if all of them are set.

    API_ID, API_HASH, PHONE and CHANNEL_NAME are read via python-dotenv so an
    unattended restart does not need the interactive prompts. SESSION_NAME
    defaults to "photoscope".
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    phone = os.getenv("PHONE")
    channel_name = os.getenv("CHANNEL_NAME")
    if not (api_id and api_hash and phone and channel_name):
        return None

    session_name = os.getenv("SESSION_NAME", "photoscope")
    return UserProfile(
        api_id=int(api_id),
        api_hash=api_hash,
        phone_number=phone,
        session_file=session_name,
        channel_name=channel_name,
    )


def build_telegram_client(profile: UserProfile) -> TelegramClient:
    logging.getLogger(__name__).info("Initializing Telegram client for session %s", profile.session_file)
    # Sequential dispatch lets the adapter's single-slot queue apply backpressure.
    return TelegramClient(profile.session_file, profile.api_id, profile.api_hash, sequential_updates=True)


def build_client(
    profile: UserProfile,
    password_provider: Optional[Callable[[], str]] = None,
) -> TelethonMessagingClient:
    """Create the messaging adapter; must be called inside the running loop."""

    return TelethonMessagingClient(build_telegram_client(profile), password_provider)
