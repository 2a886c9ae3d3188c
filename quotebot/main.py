"""CLI entry point for the container quote bot.

This provides a simple terminal-based chat interface for testing prompts
and the quoting integration without the messaging platform.  Replies are
printed instead of being sent.  For production, use the FastAPI server
(quotebot/server.py).

Usage:
    python -m quotebot.main            # normal mode (quiet)
    python -m quotebot.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from quotebot.agent import QuoteAgent
from quotebot.config import get_settings
from quotebot.errors import ConfigError
from quotebot.services.messenger import ConsoleMessenger
from quotebot.services.quote_client import QuoteClient

logger = logging.getLogger(__name__)

CLI_SENDER_ID = "cli-user"


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("quotebot").setLevel(logging.DEBUG if debug else logging.INFO)


async def _chat_loop(agent: QuoteAgent) -> None:
    while True:
        try:
            user_input = (await asyncio.to_thread(input, "You: ")).strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye!")
            break

        await agent.handle(CLI_SENDER_ID, user_input)


async def _run() -> int:
    try:
        settings = get_settings()
    except ConfigError as exc:
        print(f"Configuration error: {exc}")
        return 1

    quote_client = QuoteClient(settings)
    agent = QuoteAgent(settings, quote_client, ConsoleMessenger())
    try:
        await _chat_loop(agent)
    finally:
        await agent.aclose()
    return 0


def main() -> int:
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Container quote bot CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Container Quote Bot - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter. 'quit' to exit.")
    print("=" * 60 + "\n")

    return asyncio.run(_run())


if __name__ == "__main__":
    raise SystemExit(main())
