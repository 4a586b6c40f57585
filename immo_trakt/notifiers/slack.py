import json

import requests

from immo_trakt.errors import SinkError


def _escape(text: str) -> str:
    """Escape the characters Slack treats as mrkdwn control sequences."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _build_payload(text: str) -> dict:
    """Build a Slack message with the listing text and a divider."""
    return {
        "text": _escape(text),
        "blocks": [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": "🔔 New listing",
                    "emoji": True,
                },
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": _escape(text)},
            },
            {"type": "divider"},
        ],
    }


def _send_payload(webhook_url: str, payload: dict) -> None:
    """Send a payload to a Slack webhook.

    Raises SinkError if the webhook rejects it or cannot be reached.
    """
    try:
        response = requests.post(
            webhook_url,
            data=json.dumps(payload),
            headers={"Content-Type": "application/json"},
            timeout=30,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise SinkError(f"Failed to send Slack notification: {exc}") from exc


class SlackNotifier:
    name = "slack"

    def __init__(self, webhook_url: str):
        self.webhook_url = webhook_url

    def send(self, text: str) -> None:
        _send_payload(self.webhook_url, _build_payload(text))
