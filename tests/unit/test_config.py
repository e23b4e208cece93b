from __future__ import annotations

from pathlib import Path

import pytest

from adapters.http_client import build_async_client, build_verify
from core.config import AppSettings


def test_settings_read_rtr_prefixed_environment(monkeypatch):
    monkeypatch.setenv("RTR_API", "https://api.example.com")
    monkeypatch.setenv("RTR_SKIP_TLS_VERIFICATION", "true")
    monkeypatch.setenv("RTR_TRACE", "true")

    settings = AppSettings(_env_file=None)

    assert settings.api == "https://api.example.com"
    assert settings.skip_tls_verification is True
    assert settings.trace == "true"
    assert settings.client_id is None


def test_command_line_values_win_over_environment(monkeypatch):
    monkeypatch.setenv("RTR_API", "https://env.example.com")
    monkeypatch.setenv("RTR_CLIENT_ID", "env-client")

    settings = AppSettings(_env_file=None).merged(api="https://flag.example.com", client_id=None)

    assert settings.api == "https://flag.example.com"
    assert settings.client_id == "env-client"


def test_dotenv_file_is_read(tmp_path: Path):
    env_file = tmp_path / ".env"
    env_file.write_text("RTR_OAUTH_URL=https://uaa.example.com\n", encoding="utf-8")

    settings = AppSettings(_env_file=str(env_file))

    assert settings.oauth_url == "https://uaa.example.com"


def test_verify_policy():
    assert build_verify(AppSettings(_env_file=None, skip_tls_verification=True)) is False
    assert build_verify(AppSettings(_env_file=None)) is True


def test_unreadable_ca_bundle_is_reported(tmp_path: Path):
    settings = AppSettings(_env_file=None, ca_certs=tmp_path / "missing.pem")

    with pytest.raises(ValueError, match="Failed to read ca cert file"):
        build_verify(settings)


@pytest.mark.asyncio
async def test_client_defaults():
    settings = AppSettings(_env_file=None, http_timeout_seconds=5)

    async with build_async_client(settings) as client:
        assert client.headers["User-Agent"] == settings.user_agent
        assert client.timeout.connect == 5
        assert client.follow_redirects is False
