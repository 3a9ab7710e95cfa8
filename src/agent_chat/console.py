"""Interactive console chat with a single agent.

python -m agent_chat.console --config config/default.yaml
"""
from __future__ import annotations

import argparse
import logging
from typing import Callable, List, Optional

from dotenv import load_dotenv

from .config import load_config, setup_logging
from .errors import AgentChatError
from .server import build_service
from .service import ChatService

logger = logging.getLogger(__name__)

EXIT_COMMAND = "exit"
CLEAR_COMMAND = "clear"


def run_console(
    service: ChatService,
    agent_id: int,
    *,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> None:
    """Read lines until ``exit`` or EOF; ``clear`` wipes the agent's history."""
    output("Start chatting with the agent (type 'exit' to quit, 'clear' to clear history):")
    while True:
        try:
            line = input_fn("> ")
        except EOFError:
            break

        command = line.strip().lower()
        if command == EXIT_COMMAND:
            output("Goodbye!")
            break
        if command == CLEAR_COMMAND:
            service.history.clear_history(agent_id)
            output("Chat history cleared.")
            continue
        if not line.strip():
            continue

        try:
            reply = service.chat(agent_id, line)
        except AgentChatError as e:
            logger.debug("Chat turn failed for agent %d", agent_id, exc_info=True)
            output(f"Error: {e}")
            continue
        output(f"Agent: {reply}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Chat with an agent from the console.")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a YAML config (default: $AGENT_CHAT_CONFIG or config/default.yaml)",
    )
    parser.add_argument(
        "--agent-name",
        type=str,
        default=None,
        help="Persona name for the console agent (default: console.agent_name from config)",
    )
    args = parser.parse_args(argv)

    load_dotenv()
    cfg = load_config(args.config)
    setup_logging(cfg)

    service = build_service(cfg)
    name = args.agent_name or cfg.get("console", {}).get("agent_name") or "Console Agent"

    print("AI Agent Console")
    print("----------------")
    try:
        agent = service.agents.create_agent(name, type="openai")
        print(f"Agent created with ID: {agent.id}")
        run_console(service, agent.id)
    finally:
        service.client.close()
        service.agents.db.close()


if __name__ == "__main__":
    main()
