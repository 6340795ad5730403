"""Authorize a Telegram session ahead of the first run.

The agent can log in on its own with a confirmation code, but QR login is
only available here. Either way the session file is persisted so later runs
resume without prompting.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import qrcode
from telethon import TelegramClient, errors

from adapters.console import ConsoleCredentialProvider
from core.models import UserProfile

LOGGER = logging.getLogger(__name__)

QR_TIMEOUT_SECONDS = 120


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _two_step_password(provider: ConsoleCredentialProvider) -> str:
    password = os.getenv("TWO_FA")
    if password:
        return password
    return provider.provide_password("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    _print_qr(qr.url)
    print("Scan the code in Telegram: Settings > Devices > Link Desktop Device")
    await qr.wait(timeout=QR_TIMEOUT_SECONDS)


async def _authorize_with_phone(client: TelegramClient, profile: UserProfile, provider: ConsoleCredentialProvider) -> None:
    await client.send_code_request(profile.phone_number)
    code = provider.provide_confirmation_code()
    await client.sign_in(phone=profile.phone_number, code=code)


def pick_login_method(provider: ConsoleCredentialProvider, method: Optional[str] = None) -> str:
    method = (method or os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in {"qr", "phone"}:
        return method
    while True:
        print("")
        print("Login methods:")
        print("[1] QR code")
        print("[2] Phone code")
        print("[3] Exit")
        choice = provider.ask("photoscope > ")
        if choice == "1":
            return "qr"
        if choice == "2":
            return "phone"
        if choice == "3":
            raise SystemExit(0)
        print("Invalid option. Please choose 1, 2, or 3.")


async def authorize(
    client: TelegramClient,
    profile: UserProfile,
    provider: ConsoleCredentialProvider,
    method: Optional[str] = None,
) -> None:
    """Log the session in unless it is already authorized, then save it."""

    await client.connect()
    if await client.is_user_authorized():
        print(f"Session {profile.session_file} is already authorized")
        return

    try:
        if pick_login_method(provider, method) == "phone":
            await _authorize_with_phone(client, profile, provider)
        else:
            await _authorize_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_two_step_password(provider))

    client.session.save()
    me = await client.get_me()
    LOGGER.info("Logged in as %s, session saved as %s", me.first_name, profile.session_file)
    print(f"Logged in as {me.first_name}")
