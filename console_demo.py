"""
Offline console demo: runs the real engine without any API keys.

The conversation engine, store, extraction, follow-up sweeper and admin
operations are the production ones. Only the model is replaced: a
keyword classifier stands in for intent detection and free-form replies
are canned. Outbound messages and admin alerts print to the terminal.

Usage:
    python console_demo.py
    python console_demo.py --scenario funnel
    python console_demo.py --scenario escalation

Admin commands (interactive or scripted):
    /trial                 activate the trial with demo credentials
    /subscribe <plan>      activate a paid plan
    /sweep <hours>         run the follow-up sweep as if <hours> had passed
    /resolve [state]       hand an escalated customer back to the bot
    /context               show the customer record
    /report                funnel report
"""

import argparse
import asyncio
import itertools
from datetime import timedelta
from typing import Optional

from main import Services, build_services
from salesbot.config import settings
from salesbot.conversation import InboundEvent
from salesbot.errors import SalesBotError
from salesbot.evaluation import FunnelMetricsCalculator
from salesbot.schemas.customer_schema import Sentiment
from salesbot.schemas.intent_schema import Intent, IntentResult
from salesbot.utils import utcnow

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_PHONE = "+353870000000"
ADMIN_PHONE = "+353800000000"
DEMO_CREDENTIALS = {
    "username": "demo_user",
    "password": "demo_pass",
    "url": "http://line.example.tv:8080",
}


class OfflineClassifier:
    """Keyword stand-in for the model classifier."""

    RULES: list[tuple[list[str], Intent]] = [
        (["how much", "price", "cost"], Intent.PRICING),
        (["buffering", "not working", "freezing", "no signal"], Intent.TECHNICAL_ISSUE),
        (["paid", "receipt"], Intent.PAYMENT),
        (["hi", "hello", "hey"], Intent.GREETING),
    ]
    FRUSTRATION = ["ridiculous", "useless", "!!!"]

    async def detect_intent(self, text: str) -> IntentResult:
        lower = text.lower()
        intent = Intent.OTHER
        for keywords, candidate in self.RULES:
            if any(kw in lower for kw in keywords):
                intent = candidate
                break
        sentiment = Sentiment.NEUTRAL
        if any(kw in lower for kw in self.FRUSTRATION):
            sentiment = Sentiment.FRUSTRATED
        return IntentResult(intent=intent, confidence=0.6, sentiment=sentiment)


class OfflineLLM:
    """Canned replies in place of the hosted model."""

    @property
    def is_configured(self) -> bool:
        return True

    async def complete(self, system_prompt, messages, max_tokens) -> str:
        return (
            f"Happy to help! I'm {settings.business.agent_persona} from "
            f"{settings.business.name}. What else can I do for you? 👍"
        )

    async def extract_text_from_image(self, image_bytes, mime_type) -> Optional[str]:
        return None


class ConsoleChannel:
    """Prints outbound messages instead of sending them."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)

    async def send_text(self, phone: str, message: str) -> str:
        if phone == ADMIN_PHONE:
            print(f"{YELLOW}{BOLD}[Admin alert]{RESET}")
            print(f"{YELLOW}{message}{RESET}")
        else:
            print(f"{GREEN}{BOLD}[{settings.business.agent_persona}]{RESET} {GREEN}{message}{RESET}")
        return f"console-{next(self._ids)}"


class ConsoleSession:
    """Drives one demo customer through the funnel in the terminal."""

    SCENARIOS: dict[str, list[str]] = {
        "funnel": [
            "hi",
            "I have a Fire Stick",
            "AA:BB:CC:DD:EE:FF",
            "English please",
            "/trial",
            "/sweep 19",
            "how much is it?",
            "I'll buy the lifetime",
            "Revolut",
            "Just paid, receipt sent",
            "/subscribe lifetime",
            "/report",
        ],
        "one_shot": [
            "Fire Stick AA:BB:CC:DD:EE:FF worldwide",
            "/context",
        ],
        "escalation": [
            "hi",
            "This is a scam, I want a refund",
            "hello??",
            "/resolve",
            "firestick",
        ],
        "payment": [
            "hi",
            "I use tivimate",
            "worldwide",
            "/trial",
            "/sweep 25",
            "/sweep 49",
            "yearly",
            "paypal",
            "sent it",
            "/subscribe yearly",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self, phone: str = DEMO_PHONE) -> None:
        self.phone = phone
        self.services: Services = build_services(
            ConsoleChannel(),
            llm=OfflineLLM(),
            admin_phone=ADMIN_PHONE,
            classifier=OfflineClassifier(),
        )
        self._message_ids = itertools.count(1)

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  WHATSAPP SALES BOT - {title}{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _state(self) -> str:
        context = self.services.engine.store.get(self.phone)
        return context.state.value if context else "none"

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        async def _play() -> None:
            for step in steps:
                print(f"\n{BLUE}[Customer] {RESET}{step}")
                await self._process_input(step)
                self.system_log(f"State: {self._state()}")

        self._banner(f"Scenario: {scenario}")
        asyncio.run(_play())
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def run(self) -> None:
        self._banner("Console Demo")
        print(f"{DIM}  Type 'quit' to exit, '/report' for the funnel report{RESET}")
        asyncio.run(self._loop())

    async def _loop(self) -> None:
        while True:
            user_input = input(f"\n{BLUE}[Customer] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.system_log("Message too long, ignored")
                continue
            await self._process_input(user_input)
            self.system_log(f"State: {self._state()}")

    async def _process_input(self, text: str) -> None:
        try:
            if text.startswith("/"):
                await self._admin_command(text)
                return
            event = InboundEvent(
                phone=self.phone,
                text=text,
                message_id=f"demo-{next(self._message_ids)}",
            )
            reply = await self.services.dispatcher.handle(event)
            if reply is not None and reply.intent is not None:
                self.system_log(f"Intent: {reply.intent.intent.value}, action: {reply.action}")
        except SalesBotError as e:
            print(f"{RED}Error: {e}{RESET}")

    # ------------------------------------------------------------------ #
    # Admin commands
    # ------------------------------------------------------------------ #

    async def _admin_command(self, text: str) -> None:
        command, *args = text.split()
        admin = self.services.admin

        if command == "/trial":
            await admin.activate_trial(self.phone, DEMO_CREDENTIALS)
        elif command == "/subscribe":
            await admin.activate_subscription(self.phone, args[0] if args else "", DEMO_CREDENTIALS)
        elif command == "/sweep":
            hours = float(args[0]) if args else 0.0
            sent = await self.services.sweeper.run_once(utcnow() + timedelta(hours=hours))
            self.system_log(f"Sweep at +{hours:g}h sent: {[t for _, t in sent] or 'nothing'}")
        elif command == "/resolve":
            context = await admin.resolve_escalation(self.phone, args[0] if args else None)
            self.system_log(f"Escalation resolved, back to {context.state.value}")
        elif command == "/context":
            view = admin.get_context_view(self.phone)
            if view is None:
                self.system_log("No conversation yet")
                return
            ctx = view.context
            self.system_log(
                f"device={ctx.device and ctx.device.value} mac={ctx.mac_address} "
                f"content={ctx.content_preference and ctx.content_preference.value} "
                f"plan={ctx.plan and ctx.plan.value} messages={len(view.history)}"
            )
        elif command == "/report":
            calculator = FunnelMetricsCalculator()
            metrics = calculator.calculate(self.services.engine.store.all())
            print(calculator.format_report(metrics))
        else:
            self.system_log(f"Unknown command {command}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args(argv)

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
