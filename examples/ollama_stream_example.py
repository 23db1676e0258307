"""
Stream a prompt from a running Ollama server.

Configuration is read from the environment or a .env file:

    LLMSTREAM_OLLAMA_HOST=http://127.0.0.1:11434
    LLMSTREAM_DEFAULT_MODEL=llama3.2
"""

import asyncio
import sys

from dotenv import load_dotenv

from llmstream import (
    BackendRequestError,
    PromptRequest,
    StreamContext,
    create_debug_session,
    create_service_adapter,
    get_config,
)


async def main(prompt: str) -> int:
    load_dotenv()
    config = get_config()

    adapter = create_service_adapter(config=config)
    session = create_debug_session(adapter.event_bus, config)

    status = await adapter.test_connection()
    if not status.connected:
        print(f"Cannot reach {config.ollama_host}: {status.error}")
        await adapter.aclose()
        return 1

    print(f"Models on {config.ollama_host}: {', '.join(status.models or [])}")

    try:
        await adapter.stream_prompt(
            PromptRequest(model=config.default_model, prompt=prompt),
            lambda chunk: print(chunk, end="", flush=True),
            context=StreamContext.USER_CHAT
        )
        print()
    except BackendRequestError as e:
        print(f"\nGeneration failed: {e}")
        return 1
    finally:
        await adapter.aclose()

    for entry in session.get_entries_by_level("info"):
        print(f"[{entry.timestamp:%H:%M:%S}] {entry.message}")
    return 0


if __name__ == "__main__":
    text = " ".join(sys.argv[1:]) or "Explain what an event bus is in two sentences."
    sys.exit(asyncio.run(main(text)))
