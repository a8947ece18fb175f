from unittest.mock import MagicMock

import requests

from ingestion.clients.slack_client import SLACK_POST_MESSAGE_URL, SlackNotifier


def _session(payload=None, error=None):
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value.json.return_value = payload
    return session


def test_posts_to_channel():
    session = _session({"ok": True})
    notifier = SlackNotifier("xoxb-token", "C123", session=session)

    assert notifier.notify("hello") is True

    session.post.assert_called_once_with(
        SLACK_POST_MESSAGE_URL,
        headers={"Content-Type": "application/json", "Authorization": "Bearer xoxb-token"},
        json={"channel": "C123", "text": "hello"},
        timeout=SlackNotifier.DEFAULT_TIMEOUT_SECS,
    )


def test_noop_without_credentials():
    session = _session({"ok": True})

    assert SlackNotifier(None, "C123", session=session).notify("hi") is False
    assert SlackNotifier("xoxb-token", "", session=session).notify("hi") is False
    session.post.assert_not_called()


def test_network_errors_are_swallowed():
    notifier = SlackNotifier(
        "xoxb-token", "C123", session=_session(error=requests.exceptions.ConnectionError("down"))
    )
    assert notifier.notify("hi") is False


def test_rejected_message():
    notifier = SlackNotifier("xoxb-token", "C123", session=_session({"ok": False, "error": "channel_not_found"}))
    assert notifier.notify("hi") is False
