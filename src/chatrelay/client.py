"""Terminal chat client for the relay."""

import argparse
import logging
import sys
from typing import Dict, Iterator, List, Optional

import httpx

logger = logging.getLogger(__name__)

PROVIDERS = ("openrouter", "aimlapi")


class ChatClientError(Exception):
    """Raised when the relay rejects a request or the connection fails."""


class ChatSession:
    """
    Keeps a conversation in memory and streams replies from the relay.

    The full history is sent with every prompt, the relay holds no state.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        provider: str = "openrouter",
        timeout: float = 60.0,
        client: Optional[httpx.Client] = None,
    ):
        self.provider = provider
        self.messages: List[Dict[str, str]] = []
        if client is None:
            client = httpx.Client(base_url=base_url, timeout=timeout)
        self.client = client

    def send(self, prompt: str) -> Iterator[str]:
        """
        Send a prompt and yield the reply text as it arrives.

        The user message is recorded before the request goes out; the
        assistant message only once the stream completed.
        """
        prompt = prompt.strip()
        if not prompt:
            return

        self.messages.append({"role": "user", "content": prompt})
        payload = {"messages": list(self.messages), "provider": self.provider}

        full_response = ""
        try:
            with self.client.stream("POST", "/api/chat", json=payload) as response:
                if not 200 <= response.status_code < 300:
                    raise ChatClientError(f"API Error: {response.reason_phrase}")
                for text in response.iter_text():
                    if text:
                        full_response += text
                        yield text
        except httpx.HTTPError as e:
            raise ChatClientError(str(e)) from e

        self.messages.append({"role": "assistant", "content": full_response})

    def close(self):
        self.client.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Chat with an LLM through the relay")
    parser.add_argument("--url", default="http://localhost:3000", help="Relay base URL")
    parser.add_argument("--provider", choices=PROVIDERS, default="openrouter")
    args = parser.parse_args(argv)

    session = ChatSession(base_url=args.url, provider=args.provider)
    try:
        while True:
            try:
                prompt = input("> ")
            except EOFError:
                break
            if prompt.strip() == "exit":
                break
            try:
                for token in session.send(prompt):
                    sys.stdout.write(token)
                    sys.stdout.flush()
                sys.stdout.write("\n")
            except ChatClientError as e:
                print(f"Error: {e}", file=sys.stderr)
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
