"""Minimal terminal demonstration of the live chat session."""

import asyncio

from aiw_core.api.service import get_default_demo, list_turns, reset_conversation, send_message


async def main() -> None:
    for turn in list_turns():
        print(f"{turn['role']}: {turn['content']}")
    while True:
        text = await asyncio.to_thread(input, "> ")
        if text.strip() == "/reset":
            for turn in reset_conversation():
                print(f"{turn['role']}: {turn['content']}")
            continue
        if text.strip() == "/quit":
            break
        result = await send_message(text)
        if result["outcome"] == "ignored":
            continue
        print("assistant:", result["reply"])
        if result["error"]:
            print("error:", result["error"])
    get_default_demo().close()


if __name__ == "__main__":
    asyncio.run(main())
