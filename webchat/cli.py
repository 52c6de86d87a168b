"""webchat - web-augmented chat

Simple CLI for asking one question or running the API server.
"""

import argparse
import asyncio

from webchat.models.events import ChatEvent, EventType


def render_event(event: ChatEvent) -> str:
    """One line of terminal output for a chat event."""
    if event.event == EventType.STATUS:
        return f"[~] {event.content}..."
    if event.event == EventType.SEARCH_RESULT:
        result = event.content or {}
        return f"  [+] {result.get('title', '')[:80]} ({result.get('source') or result.get('link', '')})"
    if event.event == EventType.COMPLETION:
        sources = event.data.get("sources", [])
        return f"\n{'=' * 50}\n{event.content}\n{'=' * 50}\n[*] Sources: {len(sources)}"
    return f"[!] Error: {event.content}"


async def run_question(question: str) -> int:
    from webchat.api.deps import build_services
    from webchat.config import settings
    from webchat.services.redis_store import close_redis, create_redis

    print(f"Question: {question}")
    print("-" * 50)

    services = build_services(settings, create_redis(settings.redis_url))
    exit_code = 0
    try:
        async for event in services.orchestrator.run(question, []):
            print(render_event(event), flush=True)
            if event.event == EventType.ERROR:
                exit_code = 1
    finally:
        await services.completion_client.close()
        await close_redis(services.redis)
    return exit_code


def main() -> None:
    parser = argparse.ArgumentParser(description="webchat: web-augmented chat")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ask = subparsers.add_parser("ask", help="Answer one question from the command line")
    ask.add_argument("--query", "-q", required=True, help="Question to ask")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", "-p", type=int, default=8000)

    args = parser.parse_args()

    if args.command == "ask":
        raise SystemExit(asyncio.run(run_question(args.query)))

    import uvicorn

    uvicorn.run("webchat.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
