"""
Glass voice orchestrator entry point.

Runs the conversation engine against the configured AI providers in a
text loop, transcribes a recorded utterance, or launches the offline
console demo.

Usage:
    Provider text chat:  python main.py chat
    Transcribe + reply:  python main.py audio path/to/utterance.wav
    Console mode:        python main.py console
"""

import asyncio
import logging
import sys
from pathlib import Path

from glassvoice.config import settings

logger = logging.getLogger(__name__)


async def _chat() -> None:
    """Text chat with the provider ensemble (pattern matching when none is configured)."""
    from console_demo import ConsoleSession
    from glassvoice.conversation.orchestrator import ConversationOrchestrator

    async with ConversationOrchestrator.from_settings() as orchestrator:
        logger.info("%s ready for %s", settings.assistant.name, settings.assistant.business_name)
        await ConsoleSession(orchestrator).interact()


async def _audio(path: Path) -> None:
    """Send one recorded utterance through transcription and the full pipeline."""
    from glassvoice.conversation.orchestrator import ConversationOrchestrator

    async with ConversationOrchestrator.from_settings() as orchestrator:
        response = await orchestrator.process_audio(path.read_bytes(), f"audio-{path.stem}")
        print(response.model_dump_json(indent=2))


def _run_console_mode() -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    command = sys.argv[1] if len(sys.argv) > 1 else "chat"
    if command == "console":
        _run_console_mode()
    elif command == "audio" and len(sys.argv) > 2:
        asyncio.run(_audio(Path(sys.argv[2])))
    elif command == "chat":
        asyncio.run(_chat())
    else:
        print(__doc__)
        sys.exit(2)
