"""
Example demonstrating managed streams against the MockLLMClient.

Runs without an LLM server: a form-analysis stream completes, a chat stream
is cancelled mid-way, and a debug session prints everything it saw.
"""

import asyncio
import logging

from llmstream import (
    DebugFormatter,
    EventBus,
    EventType,
    MockLLMClient,
    StreamContext,
    StreamManager,
    StreamRequest,
    StreamLogger,
)

# Set up logging to see what's happening
logging.basicConfig(level=logging.INFO)


async def main():
    bus = EventBus()
    session = StreamLogger()
    session.attach(bus)

    # Print every stream event as the debug terminal would
    bus.subscribe(lambda event: print(DebugFormatter.format_stream_event(event).content, "\n"))

    client = MockLLMClient(
        responses=["The form ", "has three fields: ", "name, email ", "and password."],
        response_delay=0.05
    )
    manager = StreamManager(bus, llm_client=client)

    print(DebugFormatter.create_divider("Form analysis"))
    form_stream = manager.start_stream(StreamRequest(
        model="mock-llama3",
        prompt="Describe the fields of this form.",
        context=StreamContext.FORM_ANALYSIS,
        context_data={"url": "https://example.com/signup"}
    ))
    await manager.wait_until_idle()

    print(DebugFormatter.create_divider("Chat (cancelled)"))

    def stop_after_two_chunks(event):
        if event.data.sequence == 1:
            manager.cancel_stream(event.stream_id, "user pressed stop")

    unsubscribe = bus.subscribe_to_types([EventType.STREAM_CHUNK], stop_after_two_chunks)
    chat_stream = manager.start_stream(StreamRequest(
        model="mock-llama3",
        prompt="Tell me a long story.",
        context=StreamContext.USER_CHAT
    ))
    await manager.wait_until_idle()
    unsubscribe()

    status = await manager.test_connection()
    print(f"Connected: {status.connected}, models: {status.models}")

    await manager.aclose()
    session.detach()

    print(DebugFormatter.create_divider("Session summary"))
    summary = session.get_summary()
    print(f"Entries: {summary.total_entries} {summary.entries_by_level}")
    print(f"Form stream entries: {len(session.get_entries_by_stream_id(form_stream))}")
    print(f"Chat stream entries: {len(session.get_entries_by_stream_id(chat_stream))}")
    print(DebugFormatter.format_json(session.get_current_session().metadata))


if __name__ == "__main__":
    asyncio.run(main())
