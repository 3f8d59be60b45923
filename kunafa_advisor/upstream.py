import logging
from typing import AsyncIterator, Optional, Sequence

import httpx
import openai
from openai.types.chat import (
    ChatCompletionAssistantMessageParam,
    ChatCompletionMessageParam,
    ChatCompletionSystemMessageParam,
    ChatCompletionUserMessageParam,
)

from .config import Settings
from .conversation import MODEL_ROLE
from .errors import UpstreamStreamError, UpstreamUnavailable
from .models import ChatMessage, ChatRequest
from .prompts import create_initial_prompt, system_instruction

logger = logging.getLogger(__name__)


def build_messages(
    history: Sequence[ChatMessage],
    instruction: str,
    initial_prompt: Optional[str] = None,
) -> list[ChatCompletionMessageParam]:
    """Map the turn log onto chat-completions messages.

    When ``initial_prompt`` is given and the log holds a single turn, that
    turn's text is replaced by the prompt; the caller's placeholder text is
    never sent.
    """
    openai_messages: list[ChatCompletionMessageParam] = [
        ChatCompletionSystemMessageParam(role="system", content=instruction)
    ]

    for index, message in enumerate(history):
        content = message.content
        if initial_prompt is not None and index == 0 and len(history) == 1:
            content = initial_prompt

        if message.role == MODEL_ROLE:
            openai_messages.append(
                ChatCompletionAssistantMessageParam(role="assistant", content=content)
            )
        else:
            openai_messages.append(
                ChatCompletionUserMessageParam(role="user", content=content)
            )

    return openai_messages


class UpstreamClient:
    """Streams completions for one chat request from the OpenAI API."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def messages_for(self, request: ChatRequest) -> list[ChatCompletionMessageParam]:
        initial_prompt = None
        if request.is_initial_analysis:
            initial_prompt = create_initial_prompt(
                request.financial_data,
                request.calculation_result,
                request.currency,
                request.location,
            )
        return build_messages(
            request.history,
            system_instruction(request.location, request.currency),
            initial_prompt,
        )

    async def stream(self, request: ChatRequest) -> AsyncIterator[str]:
        """Open the provider stream and return an iterator over its text fragments.

        The iterator is single-use. Closing it early closes the provider
        connection.

        Raises:
            UpstreamUnavailable: no credential, or the request could not be opened.
        """
        if not self._settings.api_key:
            raise UpstreamUnavailable("API key not configured on the server")

        client = openai.AsyncOpenAI(
            api_key=self._settings.api_key,
            timeout=self._settings.timeout,
        )
        try:
            response = await client.chat.completions.create(
                model=self._settings.model,
                messages=self.messages_for(request),
                stream=True,
            )
        except openai.OpenAIError as e:
            logger.error("Could not open upstream stream: %s", e)
            raise UpstreamUnavailable(str(e)) from e

        logger.info(
            "Upstream stream opened (model=%s, turns=%d)",
            self._settings.model,
            len(request.history),
        )
        return self._fragments(response)

    async def _fragments(self, response) -> AsyncIterator[str]:
        try:
            async for event in response:
                if not event.choices:
                    continue
                if chunk := event.choices[0].delta.content:
                    yield chunk
        except (openai.OpenAIError, httpx.HTTPError) as e:
            logger.error("Upstream stream terminated abnormally: %s", e)
            raise UpstreamStreamError(str(e)) from e
        finally:
            await response.close()
