"""Tests for environment settings and the interaction log format."""

from intake_bot.config import Settings
from intake_bot.logging_config import _interaction_line_renderer


def test_settings_read_telegram_environment(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_WEBHOOK_URL", "https://bot.example.com")
    monkeypatch.setenv("ALLOWED_USER_IDS", " 1, 2 ,,3 ")

    settings = Settings()

    assert settings.telegram_bot_token == "123:abc"
    assert settings.telegram_webhook_url == "https://bot.example.com"
    assert settings.allowed_user_ids_list == [1, 2, 3]
    assert not hasattr(settings, "bot_token")
    assert not hasattr(settings, "webhook_url")


def test_drive_needs_parent_folder_and_key(monkeypatch):
    monkeypatch.setenv("GOOGLE_SERVICE_ACCOUNT_KEY", '{"client_email": "bot@x"}')
    monkeypatch.delenv("GOOGLE_DRIVE_PARENT_FOLDER_ID", raising=False)
    assert Settings().drive_enabled is False

    monkeypatch.setenv("GOOGLE_DRIVE_PARENT_FOLDER_ID", "parent-1")
    assert Settings().drive_enabled is True


def test_interaction_line_renderer():
    line = _interaction_line_renderer(
        None,
        "info",
        {
            "timestamp": "2024-05-01 10:00:00",
            "level": "info",
            "event": "Message received",
            "logger": "bot.interactions",
            "user_id": 42,
            "text": "",
        },
    )

    assert line == "2024-05-01 10:00:00 | INFO | Message received | user_id=42"
