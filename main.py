"""
Sales bot entry point.

Wires the store, history, model client, engine and the dispatch edges
around a channel adapter. A provider adapter (WhatsApp Cloud API, Twilio,
WATI) calls ``build_services`` with its sender and feeds webhook payloads
to ``services.dispatcher.handle``.

Usage:
    Console mode:   python main.py console
    Scripted demo:  python main.py console --scenario funnel
"""

import logging
import sys
from dataclasses import dataclass
from typing import Optional

from salesbot.config import settings
from salesbot.conversation import (
    AdminActions,
    ContextStore,
    ConversationEngine,
    FollowUpSweeper,
    InboundDispatcher,
    MessageHistory,
)
from salesbot.logging_context import install_phone_format
from salesbot.tools.channels import ChannelSender, HistoryProvider
from salesbot.tools.intent import IntentClassifier
from salesbot.tools.llm import LLMClient, OpenAIChatClient
from salesbot.tools.notifications import ChannelAdminNotifier

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a channel adapter needs to run the bot."""
    engine: ConversationEngine
    dispatcher: InboundDispatcher
    admin: AdminActions
    sweeper: FollowUpSweeper


def build_services(
    sender: ChannelSender,
    llm: Optional[LLMClient] = None,
    history_provider: Optional[HistoryProvider] = None,
    admin_phone: Optional[str] = None,
    classifier: Optional[IntentClassifier] = None,
) -> Services:
    """Build one process-wide set of services around ``sender``."""
    llm = llm or OpenAIChatClient()
    engine = ConversationEngine(
        store=ContextStore(),
        history=MessageHistory(),
        classifier=classifier or IntentClassifier(llm),
        llm=llm,
        notifier=ChannelAdminNotifier(sender, admin_phone),
        history_provider=history_provider,
    )
    admin = AdminActions(engine, sender)
    logger.info("Sales bot ready for '%s'", settings.business.name)
    return Services(
        engine=engine,
        dispatcher=InboundDispatcher(engine, sender),
        admin=admin,
        sweeper=FollowUpSweeper(engine, admin, sender),
    )


def _configure_log_format() -> None:
    """Include the bound customer phone in every log line."""
    for handler in logging.getLogger().handlers:
        install_phone_format(handler)


def _run_console_mode() -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import main as console_main

    console_main(sys.argv[2:])


if __name__ == "__main__":
    _configure_log_format()
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        print(__doc__)
        sys.exit(1)
