"""Client side of the chat pipeline.

Reads the relay's chunked body, decodes it incrementally and feeds the
running text into the conversation through a queue with a single consumer,
one update per received chunk.
"""

import asyncio
import codecs
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence

import httpx

from .calculator import BRANCHES, CURRENCIES, calculate, preset_financial_data
from .config import Settings
from .conversation import Conversation, Turn
from .errors import ClientReadError, ConversationStateError
from .models import CalculationResult, FinancialData

logger = logging.getLogger(__name__)

INITIAL_REQUEST = "Initial analysis request"

_END = object()


async def consume_stream(chunks: AsyncIterator[bytes], updates: asyncio.Queue) -> str:
    """Decode ``chunks`` as UTF-8 and put the cumulative text on ``updates``.

    A multi-byte character split across two chunks is held back until its
    last byte arrives. Returns the full text.
    """
    decoder = codecs.getincrementaldecoder("utf-8")()
    full_response = ""
    try:
        async for chunk in chunks:
            full_response += decoder.decode(chunk)
            await updates.put(full_response)
        full_response += decoder.decode(b"", final=True)
    except UnicodeDecodeError as e:
        raise ClientReadError(f"Response was not valid UTF-8: {e.reason}") from e
    except httpx.HTTPError as e:
        raise ClientReadError(f"Connection to the advisor was interrupted: {e}") from e
    return full_response


async def apply_updates(updates: asyncio.Queue, conversation: Conversation) -> int:
    """Assign each queued running total to the in-progress model turn."""
    applied = 0
    while True:
        text = await updates.get()
        if text is _END:
            return applied
        conversation.replace_content(text)
        applied += 1


async def stream_into(chunks: AsyncIterator[bytes], conversation: Conversation) -> str:
    updates: asyncio.Queue = asyncio.Queue()
    sink = asyncio.create_task(apply_updates(updates, conversation))
    try:
        return await consume_stream(chunks, updates)
    finally:
        await updates.put(_END)
        await sink


def build_payload(
    history: Sequence[dict[str, str]],
    currency: str,
    location: str,
    financial_data: Optional[FinancialData] = None,
    calculation_result: Optional[CalculationResult] = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "history": list(history),
        "currency": currency,
        "location": location,
    }
    if financial_data is not None and calculation_result is not None:
        payload["financialData"] = financial_data.model_dump(by_alias=True)
        payload["calculationResult"] = calculation_result.model_dump(by_alias=True)
    return payload


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "Failed to parse error response from server."
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"API request failed with status {response.status_code}"


class AdvisorClient:
    """HTTP client for the ``/api/chat`` relay."""

    def __init__(
        self,
        url: str,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self._timeout = timeout
        self._http = http_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdvisorClient":
        return cls(settings.relay_url, timeout=settings.timeout)

    @asynccontextmanager
    async def open_stream(self, payload: dict[str, Any]) -> AsyncIterator[AsyncIterator[bytes]]:
        """POST ``payload`` and yield the response body as raw byte chunks.

        Raises:
            ClientReadError: the relay was unreachable or answered with an error.
        """
        async with AsyncExitStack() as stack:
            http = self._http
            if http is None:
                http = await stack.enter_async_context(
                    httpx.AsyncClient(timeout=self._timeout)
                )
            try:
                response = await stack.enter_async_context(
                    http.stream("POST", self.url, json=payload)
                )
            except httpx.HTTPError as e:
                raise ClientReadError(f"Could not reach the advisor: {e}") from e

            if response.is_error:
                try:
                    await response.aread()
                except httpx.HTTPError as e:
                    raise ClientReadError(
                        f"Connection to the advisor was interrupted: {e}"
                    ) from e
                raise ClientReadError(_error_message(response))

            yield response.aiter_bytes()


class ChatSession:
    """One branch's calculator-plus-chat session, as driven by the UI."""

    def __init__(
        self,
        client: AdvisorClient,
        location: Optional[str] = None,
        currency: str = "INR",
    ) -> None:
        if location is not None and location not in BRANCHES:
            raise ValueError(f"unknown branch: {location}")
        if currency not in CURRENCIES:
            raise ValueError(f"unsupported currency: {currency}")
        self.client = client
        self.location = location
        self.currency = currency
        self.conversation = Conversation()
        self.result: Optional[CalculationResult] = None

    def select_branch(self, location: str) -> FinancialData:
        """Switch branch, dropping the conversation. Returns the preset inputs."""
        if location not in BRANCHES:
            raise ValueError(f"unknown branch: {location}")
        self.location = location
        self.result = None
        self.conversation.reset()
        return preset_financial_data(location)

    async def start_analysis(self, financial_data: FinancialData) -> CalculationResult:
        """Calculate the month's result and stream the initial analysis.

        If the stream cannot be read, or fails in any other way, the whole
        conversation is discarded and the error is re-raised.
        """
        if self.location is None:
            raise ConversationStateError("select a branch before calculating")

        self.conversation.reset()
        result = calculate(financial_data)
        self.result = result

        self.conversation.append_user(INITIAL_REQUEST)
        history = self.conversation.history()
        self.conversation.append_model_placeholder()

        try:
            await self._stream(history, financial_data, result)
        except ClientReadError as e:
            logger.error("Initial analysis for %s failed: %s", self.location, e)
            self.conversation.reset()
            raise
        finally:
            if self.conversation.in_progress:
                self.conversation.reset()
        return result

    async def send_message(self, text: str) -> Optional[Turn]:
        """Ask a follow-up question. Blank messages are ignored.

        A failed stream leaves an error message in the model turn; the
        session stays usable for the next message.
        """
        if not text.strip():
            return None
        if self.location is None:
            raise ConversationStateError("select a branch before chatting")

        self.conversation.append_user(text)
        history = self.conversation.history()
        self.conversation.append_model_placeholder()

        try:
            await self._stream(history)
        except ClientReadError as e:
            logger.error("Follow-up for %s failed: %s", self.location, e)
            self.conversation.fail(f"Sorry, I encountered an error: {e}")
        finally:
            # Other errors propagate with the turn closed.
            if self.conversation.in_progress:
                self.conversation.fail("Sorry, the response was interrupted.")
        return self.conversation.turns[-1]

    async def _stream(
        self,
        history: list[dict[str, str]],
        financial_data: Optional[FinancialData] = None,
        calculation_result: Optional[CalculationResult] = None,
    ) -> None:
        payload = build_payload(
            history,
            self.currency,
            self.location,
            financial_data,
            calculation_result,
        )
        async with self.client.open_stream(payload) as chunks:
            await stream_into(chunks, self.conversation)
        self.conversation.complete()
