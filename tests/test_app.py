from __future__ import annotations

import pytest

import app
import client
from core import vault
from core.models import UserProfile


class FixedPasswords:
    def __init__(self, *passwords: str) -> None:
        self.passwords = list(passwords)

    def provide_password(self, prompt: str = "Password: ") -> str:
        return self.passwords.pop(0)


def _profile() -> UserProfile:
    return UserProfile(
        api_id=7,
        api_hash="hash",
        phone_number="+1 555",
        session_file="carol.session",
        channel_name="Out",
    )


def test_missing_vault_file_exits_with_message(tmp_path, capsys) -> None:
    missing = tmp_path / "nope.vault"

    with pytest.raises(SystemExit) as exit_info:
        app._load_vault(str(missing), FixedPasswords("pw", "pw"))

    assert exit_info.value.code == 1
    assert "Cannot load file, error:" in capsys.readouterr().out


def test_vault_password_is_asked_again(tmp_path, capsys) -> None:
    path = tmp_path / "carol.vault"
    vault.save_profile(_profile(), path, "right")

    assert app._load_vault(str(path), FixedPasswords("wrong", "right")) == _profile()
    assert "Cannot load file, error:" in capsys.readouterr().out


def test_telegram_client_dispatches_updates_sequentially(monkeypatch) -> None:
    calls = []

    def fake_client(*args, **kwargs):
        calls.append((args, kwargs))
        return object()

    monkeypatch.setattr(client, "TelegramClient", fake_client)

    client.build_telegram_client(_profile())

    assert calls == [(("carol.session", 7, "hash"), {"sequential_updates": True})]
