"""CLI entry point for the course-booking assistant.

A terminal chat for development. For production, use the FastAPI server
(booking_assistant/server.py).

Usage:
    python -m booking_assistant.main                 # anonymous, can browse only
    python -m booking_assistant.main --user alice    # signed in, can reserve
    python -m booking_assistant.main --debug         # show all log messages
"""

from __future__ import annotations

import argparse
import json
import logging
import uuid

from dotenv import load_dotenv
from langchain_core.messages import HumanMessage

from booking_assistant.runtime import build_runtime
from booking_assistant.services.reservations import NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        # Silence chatty HTTP loggers even if root is WARNING
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("booking_assistant").setLevel(logging.DEBUG if debug else logging.INFO)


def _print_events(events: list[dict]) -> None:
    for event in events:
        print(f"  [{event['tool']}] {json.dumps(event['result'], ensure_ascii=False, indent=2)}")
        for action in event.get("actions", []):
            print(f"    → {action}")


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Course booking assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument(
        "--user", default=None,
        help="User id to chat as; without it reservations are refused",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Course Booking Assistant - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new session,")
    print("            'pay <reservation id>' to simulate a payment.")
    print("=" * 60 + "\n")

    runtime = build_runtime()
    session_id = str(uuid.uuid4())
    logger.info("Started new session: %s", session_id)

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye!")
            break

        if user_input.lower() == "new":
            session_id = str(uuid.uuid4())
            print(f"\n>> New session started: {session_id[:8]}...\n")
            continue

        if user_input.lower().startswith("pay "):
            reservation_id = user_input[4:].strip()
            try:
                runtime.reservations.mark_paid(reservation_id, args.user or "")
                print(f"\n>> Reservation {reservation_id} marked as paid.\n")
            except (NotFoundError, PermissionDeniedError) as e:
                print(f"\n>> {e}\n")
            continue

        try:
            result = runtime.agent.invoke(
                {"messages": [HumanMessage(content=user_input)]},
                config={"configurable": {"thread_id": session_id, "user_id": args.user}},
            )
            _print_events(result.get("events") or [])
            reply = result.get("reply", "")
            if reply:
                print(f"\nAssistant: {reply}\n")

        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except Exception as e:
            logger.exception("Error processing message")
            print(f"\nAssistant: Sorry, something went wrong: {e}")
            print("     Please try again or type 'new' to start a fresh session.\n")

    runtime.close()


if __name__ == "__main__":
    main()
