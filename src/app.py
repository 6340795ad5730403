"""Application entry point for the photoscope agent."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.console import ConsoleCredentialProvider, ask_for_profile
from adapters.tesseract_recognizer import TesseractRecognizer
from client import build_client, build_telegram_client, load_profile_from_env
from core import vault
from core.config import BackoffConfig, ChannelConfig, PipelineConfig
from core.errors import RetriesExhausted, VaultError
from core.models import UserProfile
from core.processor import ForwardingPipeline
from core.provisioner import ChannelProvisioner
from core.supervisor import ConnectionSupervisor
from login import authorize

NAME = "PHOTOSCOPE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict, extra: Iterable[str] = ()) -> list[str]:
    values = [value for value in extra if value]
    redact_cfg = config.get("redact", {}) if config else {}
    if redact_cfg.get("enabled", True):
        for name in redact_cfg.get("patterns", ["API_HASH", "PHONE", "TWO_FA"]):
            value = os.getenv(name)
            if value:
                values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(profile: Optional[UserProfile] = None) -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s:%(lineno)d: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    extra = [profile.api_hash, profile.phone_number] if profile else []
    formatter = _RedactingFormatter(_collect_redaction_values(config, extra), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    # Only coarse status lines go to the terminal by default; the rest is
    # in the log file.
    if config.get("console", False):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", True):
        path = file_cfg.get("path", "logs/photoscope.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers, force=True)


def _load_vault(path: str, provider: ConsoleCredentialProvider) -> UserProfile:
    """Ask for the password until the vault opens; an unreadable file is fatal."""

    while True:
        try:
            return vault.load_profile(path, provider.provide_password())
        except VaultError as exc:
            print(f"Cannot load file, error: {exc}")
        except OSError as exc:
            logging.getLogger(__name__).error("Cannot read vault %s: %s", path, exc)
            print(f"Cannot load file, error: {exc}")
            raise SystemExit(1) from exc


def _acquire_profile(vault_file: Optional[str], provider: ConsoleCredentialProvider) -> UserProfile:
    """Explicit vault first, then the environment, then the interactive prompts."""

    if vault_file:
        return _load_vault(vault_file, provider)
    profile = load_profile_from_env()
    if profile is not None:
        return profile
    return ask_for_profile(provider, Path(settings.VAULT_DIR), settings.VAULT_SUFFIX)


async def _serve(profile: UserProfile, provider: ConsoleCredentialProvider) -> None:
    client = build_client(profile, password_provider=lambda: provider.provide_password("2FA password: "))

    provisioner = ChannelProvisioner(
        client,
        BackoffConfig(
            base=settings.BACKOFF_BASE,
            max_exponent=settings.PROVISION_BACKOFF_MAX_EXPONENT,
            max_attempts=settings.PROVISION_MAX_ATTEMPTS,
        ),
    )
    pipeline = ForwardingPipeline(
        client,
        TesseractRecognizer(settings.TESSERACT_CMD),
        PipelineConfig(
            language=settings.OCR_LANGUAGE,
            min_confidence=settings.OCR_MIN_CONFIDENCE,
            max_media_bytes=settings.MAX_MEDIA_BYTES,
        ),
    )
    supervisor = ConnectionSupervisor(
        client,
        provider,
        profile,
        provisioner,
        pipeline,
        ChannelConfig(name=profile.channel_name, about=settings.CHANNEL_ABOUT),
        BackoffConfig(
            base=settings.BACKOFF_BASE,
            max_exponent=settings.BACKOFF_MAX_EXPONENT,
            max_attempts=settings.BACKOFF_MAX_ATTEMPTS,
        ),
    )
    try:
        await supervisor.run()
    finally:
        await client.telegram.disconnect()


def _run(vault_file: Optional[str]) -> None:
    _print_banner()
    _configure_logging()
    provider = ConsoleCredentialProvider()
    profile = _acquire_profile(vault_file, provider)
    # Reconfigure now that the profile's secrets are known.
    _configure_logging(profile)

    logger = logging.getLogger(__name__)
    logger.info("Starting photoscope, output channel %r", profile.channel_name)
    try:
        asyncio.run(_serve(profile, provider))
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except RetriesExhausted as exc:
        logger.error("Giving up: %s", exc)
        raise SystemExit(1) from exc


def _login(vault_file: Optional[str], method: Optional[str]) -> None:
    _print_banner()
    _configure_logging()
    provider = ConsoleCredentialProvider()
    profile = _acquire_profile(vault_file, provider)
    _configure_logging(profile)

    async def _run_login() -> None:
        client = build_telegram_client(profile)
        try:
            await authorize(client, profile, provider, method)
        finally:
            await client.disconnect()

    asyncio.run(_run_login())


def _mask(value: str, keep: int = 3) -> str:
    if len(value) <= keep:
        return "*" * len(value)
    return value[:keep] + "*" * (len(value) - keep)


def _show_vault(vault_file: str) -> None:
    _configure_logging()
    profile = _load_vault(vault_file, ConsoleCredentialProvider())
    print(f"api_id:       {profile.api_id}")
    print(f"api_hash:     {_mask(profile.api_hash)}")
    print(f"phone_number: {_mask(profile.phone_number, keep=4)}")
    print(f"session_file: {profile.session_file}")
    print(f"channel_name: {profile.channel_name}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="photoscope")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Start the agent")
    run_parser.add_argument("--vault", help="Encrypted profile file to load")

    login_parser = subparsers.add_parser("login", help="Authorize and save a Telegram session")
    login_parser.add_argument("--vault", help="Encrypted profile file to load")
    login_parser.add_argument("--method", choices=["qr", "phone"], help="Login method")

    vault_parser = subparsers.add_parser("vault", help="Decrypt a profile file and show its fields")
    vault_parser.add_argument("--vault", required=True, help="Encrypted profile file to open")

    args = parser.parse_args(argv)
    if args.command == "login":
        _login(args.vault, args.method)
        return
    if args.command == "vault":
        _show_vault(args.vault)
        return
    _run(getattr(args, "vault", None))


if __name__ == "__main__":
    main()
