"""Entry point and message-handling pipeline for slack-focus-mode."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from concurrent.futures import ThreadPoolExecutor

from slack_focus_mode.commands import FocusCommands
from slack_focus_mode.config import Config, load_config
from slack_focus_mode.filters import addressed_users
from slack_focus_mode.focus import FocusSessionManager
from slack_focus_mode.llm_classifier import classify
from slack_focus_mode.slack_listener import SlackListener
from slack_focus_mode.store import SessionStore
from slack_focus_mode.triage import Disposition, triage_message

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="slack-focus-mode",
        description="Hold non-urgent Slack messages while you focus and summarize them afterwards.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=None,
        help="Path to config YAML (default: ~/.config/slack-focus-mode/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    return parser.parse_args(argv)


def handle_message(
    event,
    client,
    *,
    listener: SlackListener,
    manager: FocusSessionManager,
    store: SessionStore,
    config: Config,
    bot_user_id: str,
) -> list[Disposition]:
    """Process a single Slack message event for every focusing recipient.

    Steps: parse → addressed users → live session lookup → classify (once)
    → hold or pass per user.
    """
    msg = listener.parse_event(event, client)
    if msg is None:
        return []

    focusing = []
    for user_id in addressed_users(msg, bot_user_id):
        session = manager.get_active(user_id)
        if session is not None:
            focusing.append((user_id, session))

    if not focusing:
        logger.debug("No focusing recipients: %s / %s", msg.channel, msg.sender)
        return []

    classification = classify(msg.text, msg.channel, msg.sender, config)
    return [
        triage_message(
            msg,
            user_id,
            session,
            store=store,
            config=config,
            classification=classification,
        )
        for user_id, session in focusing
    ]


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        level=getattr(logging, args.log_level),
    )

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        logger.error("Config file not found: %s", exc)
        sys.exit(1)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)

    logger.info("Configuration loaded successfully")
    if not config.classifier_configured:
        logger.warning("No ollama_url configured; classifying by keywords only")

    store = SessionStore(config.db_path)
    store.initialize()
    manager = FocusSessionManager(store)
    executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="summary")
    commands = FocusCommands(manager, config, executor)

    listener = SlackListener()
    bot_user_id = listener.bot_user_id

    # Register the slash command and message handlers on the Slack app.
    @listener.app.command(config.command)
    def _on_command(ack, command, client):
        text = commands.handle(command["user_id"], command.get("text", ""), client)
        ack(response_type="ephemeral", text=text)

    @listener.app.event("message")
    def _on_message(event, client):
        handle_message(
            event,
            client,
            listener=listener,
            manager=manager,
            store=store,
            config=config,
            bot_user_id=bot_user_id,
        )

    # Graceful shutdown on SIGTERM / SIGINT.
    def _shutdown(signum, _frame):
        sig_name = signal.Signals(signum).name
        logger.info("Received %s — shutting down", sig_name)
        listener.close()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    logger.info("Starting slack-focus-mode")
    try:
        listener.start()
    finally:
        executor.shutdown(wait=True)
        store.close()
