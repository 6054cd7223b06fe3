"""Direct-message sender using the Slack Web API."""

import logging

logger = logging.getLogger(__name__)


class NotifierError(Exception):
    """Slack did not give us a DM channel to post into."""


def send_dm(client, user_id: str, text: str, blocks: list[dict] | None = None) -> None:
    """Send a direct message to a Slack user.

    Args:
        client: A ``slack_sdk.WebClient`` (the bolt ``app.client``).
        user_id: The recipient's Slack user ID.
        text: Message text (mrkdwn); also the fallback when ``blocks`` is set.
        blocks: Optional Block Kit blocks.

    Raises:
        NotifierError: If no DM channel could be opened.
        slack_sdk.errors.SlackClientError: If a Web API call fails.
    """
    conversation = client.conversations_open(users=user_id)
    channel_id = (conversation.get("channel") or {}).get("id")
    if not channel_id:
        raise NotifierError(f"Could not open DM channel with {user_id}")

    kwargs = {"channel": channel_id, "text": text}
    if blocks is not None:
        kwargs["blocks"] = blocks
    client.chat_postMessage(**kwargs)

    logger.info("DM sent: user=%s chars=%d", user_id, len(text))
