"""Console prompts for credentials and first-run profile entry."""

from __future__ import annotations

import logging
from getpass import getpass
from pathlib import Path
from typing import Callable

from core import vault
from core.errors import VaultError
from core.models import UserProfile

LOGGER = logging.getLogger(__name__)


class ConsoleCredentialProvider:
    """CredentialProviderPort that asks on the terminal; passwords are not echoed."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        password_func: Callable[[str], str] = getpass,
    ) -> None:
        self._input = input_func
        self._password = password_func

    def ask(self, prompt: str) -> str:
        """Ask until a non-empty answer is given."""

        while True:
            answer = self._input(prompt).strip()
            if answer:
                return answer

    def ask_int(self, prompt: str) -> int:
        while True:
            answer = self.ask(prompt)
            try:
                return int(answer)
            except ValueError:
                print(f"{answer!r} is not a number, try again")

    def ask_yes_no(self, prompt: str) -> bool:
        while True:
            answer = self.ask(f"{prompt} [y/n] ").lower()
            if answer.startswith("y"):
                return True
            if answer.startswith("n"):
                return False
            print("You need to enter y or n")

    def provide_confirmation_code(self) -> str:
        return self.ask("Enter verification code: ")

    def provide_password(self, prompt: str = "Password: ") -> str:
        while True:
            password = self._password(prompt)
            if password:
                return password


def ask_for_profile(provider: ConsoleCredentialProvider, vault_dir: Path, suffix: str) -> UserProfile:
    """Load a profile from a vault, or enter one by hand and optionally save it."""

    print("Welcome to photoscope")
    while True:
        if not provider.ask_yes_no(
            "Would you like to load data from an encrypted file? "
            "(on first use you need to enter data manually)"
        ):
            return _enter_profile(provider, vault_dir, suffix)

        login = provider.ask("Login: ")
        path = vault.vault_path(vault_dir, login, suffix)
        try:
            return vault.load_profile(path, provider.provide_password())
        except (VaultError, OSError) as exc:
            LOGGER.warning("Cannot load profile from %s: %s", path, exc)
            print(f"Cannot load file, error: {exc}")


def _enter_profile(provider: ConsoleCredentialProvider, vault_dir: Path, suffix: str) -> UserProfile:
    LOGGER.info("Entering user data manually")

    username = provider.ask("Enter your username: ")
    profile = UserProfile(
        session_file=f"{username}.session",
        api_id=provider.ask_int("Enter your api_id: "),
        api_hash=provider.ask("Enter your api_hash: "),
        phone_number=provider.ask("Enter your phone number with region code e.g. +48123456789: "),
        channel_name=provider.ask("Enter the name of the channel where photos should be sent: "),
    )

    while provider.ask_yes_no("Would you like to save your data in an encrypted file?"):
        path = vault.vault_path(vault_dir, username, suffix)
        try:
            vault.save_profile(profile, path, provider.provide_password("Enter new password: "))
        except (VaultError, OSError) as exc:
            LOGGER.warning("Error while saving file: %s", exc)
            print(f"Error while saving file: {exc}")
            continue
        print("Data successfully saved to file")
        break

    return profile
