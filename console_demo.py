"""
Offline console demo: runs full glass-order conversations without any API keys.

Drives the real orchestrator, order builder, action executor and
in-memory order store. With no providers configured, intents come from
the pattern classifier and replies from the intent templates. Designed
for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario order
    python console_demo.py --scenario search
"""

import argparse
import asyncio
from typing import Optional

from glassvoice.config import settings
from glassvoice.conversation.orchestrator import ConversationOrchestrator
from glassvoice.schemas.conversation_schema import VoiceResponse

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


class ConsoleSession:
    """Simulates a voice session in the terminal, one line per utterance."""

    SESSION_KEY = "console"

    def __init__(self, orchestrator: Optional[ConversationOrchestrator] = None) -> None:
        self.orchestrator = orchestrator or ConversationOrchestrator()
        self.ended = False

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.assistant.name}]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "order": [
            "Hi there",
            "Create a new order",
            "Tempered glass",
            "1200 by 800 millimeters",
            "5 pieces",
            "Test Customer Inc",
            "Yes, create it",
            "That's all, goodbye",
        ],
        "search": [
            "Show me pending orders",
            "Find the most expensive orders",
            "Check order 3",
            "Generate a report",
            "Thanks, bye",
        ],
        "quote": [
            "How much for 4 pieces of laminated glass 1000 by 500?",
            "Update order 1 to in production",
            "Thanks, bye",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  GLASS VOICE ORCHESTRATOR - {title}{RESET}")
        print(f"{BOLD}  Business: {settings.assistant.business_name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _footer(self, title: str) -> None:
        stats = self.orchestrator.session_stats(self.SESSION_KEY)
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        if stats:
            print(f"{DIM}  Session stats: {stats}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _show(self, response: VoiceResponse) -> None:
        if response.filler_word:
            self.system_log(f"Filler: {response.filler_word}")
        if response.text:
            self.agent_say(response.text)
        if response.action:
            self.system_log(f"Action: {response.action}")
            if response.action == "end_conversation":
                self.ended = True
        session = self.orchestrator.store.get(self.SESSION_KEY)
        if session and session.order_builder:
            self.system_log(f"Order step: {session.order_builder.step.value}")

    async def _say(self, text: str) -> None:
        # Partial transcript first, the way a streaming recognizer would deliver it.
        interim = await self.orchestrator.process(
            text, self.SESSION_KEY, is_final=False, is_interim=True
        )
        if interim.filler_word:
            self.system_log(f"Thinking: {interim.filler_word}")
        response = await self.orchestrator.process(text, self.SESSION_KEY)
        self._show(response)

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return
        asyncio.run(self._play(scenario, steps))

    async def _play(self, scenario: str, steps: list[str]) -> None:
        self._banner(f"Scenario: {scenario}")
        try:
            for step in steps:
                if self.ended:
                    break
                print(f"\n{BLUE}[Caller] {RESET}{step}")
                await self._say(step)
            self._footer(f"Scenario '{scenario}' complete.")
        finally:
            await self.orchestrator.aclose()

    def run(self) -> None:
        asyncio.run(self.interact())

    async def interact(self) -> None:
        self._banner("Console Demo")
        print(f"{YELLOW}  Type 'quit' to exit{RESET}")
        loop = asyncio.get_running_loop()
        try:
            while not self.ended:
                raw = await loop.run_in_executor(None, input, f"\n{BLUE}[Caller] {RESET}")
                user_input = raw.strip()
                if not user_input:
                    continue
                if user_input.lower() in ("quit", "exit", "q"):
                    print(f"\n{DIM}Session ended.{RESET}")
                    return
                if len(user_input) > self.MAX_INPUT_LENGTH:
                    self.agent_say("That was quite long. Could you keep it brief for me?")
                    continue
                await self._say(user_input)
            self._footer("Conversation complete.")
        finally:
            await self.orchestrator.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
