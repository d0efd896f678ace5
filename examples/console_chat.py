"""Minimal terminal front-end for ChatClient.

Reads CHAT_API_URL / CHAT_API_KEY / CHAT_AUTH_TYPE (or config.yaml) and
prints each reply as it is typed out.
"""

import asyncio
import sys

from chat_core import ChatClient
from chat_core.playback.targets import CURSOR


class ConsoleTarget:
    def __init__(self):
        self._shown = ""

    def _redraw(self, text: str) -> None:
        if text.startswith(self._shown):
            sys.stdout.write(text[len(self._shown):])
        else:
            sys.stdout.write("\n" + text)
        self._shown = text
        sys.stdout.flush()

    def on_status(self, text: str) -> None:
        print(f"[{text}]")

    def on_fragment(self, text: str) -> None:
        self._redraw(text)
        sys.stdout.write(CURSOR + "\b")

    def on_final(self, text: str) -> None:
        self._redraw(text)
        sys.stdout.write(" \n")
        self._shown = ""

    def on_error(self, kind: str, message: str) -> None:
        print(f"\n[{kind}] {message}")
        self._shown = ""


async def main() -> None:
    client = ChatClient()
    probe = await client.probe()
    print(probe.diagnostics)
    if not probe.ok:
        print(probe.error)
    while True:
        try:
            question = input("User: ")
        except EOFError:
            break
        if question.strip() in {"exit", "quit"}:
            break
        print("Assistant: ", end="")
        await client.send(question, ConsoleTarget())


if __name__ == "__main__":
    asyncio.run(main())
