"""Tests for message formatting and the notification transports."""

import json
import smtplib
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from conftest import make_listing
from immo_trakt.config import EmailConfig
from immo_trakt.errors import ConfigError, SinkError
from immo_trakt.notifiers.base import LogNotifier, format_listing_message
from immo_trakt.notifiers.discord import DiscordNotifier
from immo_trakt.notifiers.mail import EmailNotifier
from immo_trakt.notifiers.slack import SlackNotifier
from immo_trakt.notifiers.telegram import TelegramNotifier, resolve_chat_id

MESSAGE = "Altbau mit Balkon\n65.5 m²  -  2.5 rooms  -  950.5 € warm\nhttps://www.immobilienscout24.de/expose/42"


def _ok_response(payload=None):
    response = Mock()
    response.json.return_value = payload if payload is not None else {"ok": True, "result": {}}
    return response


def test_format_listing_message():
    listing = make_listing(
        "42",
        title="Altbau mit Balkon",
        warm_rent=950.5,
        living_space=65.5,
        number_of_rooms=2.5,
    )

    assert format_listing_message(listing) == MESSAGE


def test_format_whole_numbers_without_decimals():
    listing = make_listing("1", title="Neubau", warm_rent=1100.0, living_space=80.0, number_of_rooms=3.0)

    assert format_listing_message(listing).splitlines()[1] == "80 m²  -  3 rooms  -  1100 € warm"


def test_log_notifier_never_fails():
    LogNotifier().send(MESSAGE)


class TestTelegram:
    @patch("immo_trakt.notifiers.telegram.requests.post")
    def test_send_message(self, mock_post):
        mock_post.return_value = _ok_response()

        TelegramNotifier("123:abc", "4711").send(MESSAGE)

        url = mock_post.call_args.args[0]
        assert url == "https://api.telegram.org/bot123:abc/sendMessage"
        assert mock_post.call_args.kwargs["json"] == {"chat_id": "4711", "text": MESSAGE}

    @patch("immo_trakt.notifiers.telegram.requests.post")
    def test_api_error_raises_sink_error(self, mock_post):
        mock_post.return_value = _ok_response({"ok": False, "description": "Bad Request: chat not found"})

        with pytest.raises(SinkError, match="chat not found"):
            TelegramNotifier("123:abc", "4711").send(MESSAGE)

    @patch("immo_trakt.notifiers.telegram.requests.post")
    def test_non_object_reply_raises_sink_error(self, mock_post):
        mock_post.return_value = _ok_response(["unexpected"])

        with pytest.raises(SinkError, match="expected an object"):
            TelegramNotifier("123:abc", "4711").send(MESSAGE)

    @patch("immo_trakt.notifiers.telegram.requests.post")
    def test_network_error_raises_sink_error(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(SinkError):
            TelegramNotifier("123:abc", "4711").send(MESSAGE)

    @patch("immo_trakt.notifiers.telegram.requests.post")
    def test_resolve_chat_id_from_first_update(self, mock_post):
        mock_post.return_value = _ok_response({
            "ok": True,
            "result": [
                {"update_id": 1, "message": {"chat": {"id": 987654}, "text": "hi"}},
                {"update_id": 2, "message": {"chat": {"id": 111}, "text": "hello"}},
            ],
        })

        assert resolve_chat_id("123:abc") == "987654"
        assert mock_post.call_args.args[0].endswith("/getUpdates")

    @patch("immo_trakt.notifiers.telegram.requests.post")
    def test_resolve_chat_id_without_updates(self, mock_post):
        mock_post.return_value = _ok_response({"ok": True, "result": []})

        with pytest.raises(ConfigError, match="send a message to the bot"):
            resolve_chat_id("123:abc")

    @patch("immo_trakt.notifiers.telegram.requests.post")
    def test_resolve_chat_id_invalid_token(self, mock_post):
        mock_post.return_value = Mock()
        mock_post.return_value.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized")

        with pytest.raises(ConfigError):
            resolve_chat_id("bad")


class TestWebhooks:
    @patch("immo_trakt.notifiers.slack.requests.post")
    def test_slack_payload(self, mock_post):
        SlackNotifier("https://hooks.slack.com/services/T/B/X").send(MESSAGE)

        payload = json.loads(mock_post.call_args.kwargs["data"])
        assert payload["text"] == MESSAGE
        assert payload["blocks"][1]["text"]["text"] == MESSAGE

    @patch("immo_trakt.notifiers.slack.requests.post")
    def test_slack_escapes_control_characters(self, mock_post):
        SlackNotifier("https://hooks.slack.com/services/T/B/X").send("Loft <Mitte> & Balkon\nhttps://example.org")

        payload = json.loads(mock_post.call_args.kwargs["data"])
        assert payload["blocks"][1]["text"]["text"] == "Loft &lt;Mitte&gt; &amp; Balkon\nhttps://example.org"
        assert payload["text"].startswith("Loft &lt;Mitte&gt; &amp; Balkon")

    @patch("immo_trakt.notifiers.slack.requests.post")
    def test_slack_failure(self, mock_post):
        mock_post.return_value.raise_for_status.side_effect = requests.HTTPError("404")

        with pytest.raises(SinkError):
            SlackNotifier("https://hooks.slack.com/services/T/B/X").send(MESSAGE)

    @patch("immo_trakt.notifiers.discord.requests.post")
    def test_discord_payload(self, mock_post):
        DiscordNotifier("https://discord.com/api/webhooks/1/x").send(MESSAGE)

        embed = json.loads(mock_post.call_args.kwargs["data"])["embeds"][0]
        assert embed["title"] == "Altbau mit Balkon"
        assert embed["description"].endswith("/expose/42")

    @patch("immo_trakt.notifiers.discord.requests.post")
    def test_discord_failure(self, mock_post):
        mock_post.side_effect = requests.Timeout("timed out")

        with pytest.raises(SinkError):
            DiscordNotifier("https://discord.com/api/webhooks/1/x").send(MESSAGE)


class TestEmail:
    def _config(self):
        return EmailConfig(
            smtp_host="smtp.example.org",
            username="bot@example.org",
            password="secret",
            recipient="me@example.org",
        )

    @patch("immo_trakt.notifiers.mail.smtplib.SMTP")
    def test_send(self, mock_smtp):
        server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = server

        EmailNotifier(self._config()).send(MESSAGE)

        mock_smtp.assert_called_once_with("smtp.example.org", 587, timeout=30)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("bot@example.org", "secret")
        sender, recipients, body = server.sendmail.call_args.args
        assert sender == "bot@example.org"
        assert recipients == ["me@example.org"]
        assert "Subject: [immo-trakt] Altbau mit Balkon" in body

    @patch("immo_trakt.notifiers.mail.smtplib.SMTP")
    def test_smtp_failure(self, mock_smtp):
        mock_smtp.side_effect = smtplib.SMTPConnectError(421, "busy")

        with pytest.raises(SinkError):
            EmailNotifier(self._config()).send(MESSAGE)
