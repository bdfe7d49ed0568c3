"""Reasoning capability: the one narrow interface to text generation.

Every service talks to its reasoning collaborator through
:class:`ReasoningCapability.invoke`, which takes a prompt and returns text.
:class:`ChatModelReasoner` backs the interface with any LangChain
``BaseChatModel`` and maps its failures onto the domain taxonomy
(``UpstreamTimeout``, ``UpstreamError``).  :func:`parse_structured` turns a
text response into a Pydantic model, raising ``MalformedResponse`` when it
cannot.

Example
-------
::

    from langchain_anthropic import ChatAnthropic
    from discovery_compounding.infrastructure.reasoning import ChatModelReasoner

    reasoner = ChatModelReasoner(ChatAnthropic(model="claude-sonnet-4-5"), timeout=30.0)
    text = await reasoner.invoke("Summarize recent work on quantum sensors")
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, TypeVar

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.utils.json import parse_json_markdown
from pydantic import BaseModel, ValidationError

from discovery_compounding.domain.exceptions import (
    MalformedResponse,
    UpstreamError,
    UpstreamTimeout,
)
from discovery_compounding.infrastructure.config import ReasoningConfig

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


# ===================================================================== #
#  Capability interface                                                  #
# ===================================================================== #

class ReasoningCapability(ABC):
    """Opaque, possibly slow, possibly failing prompt -> text function.

    Implementations must raise ``UpstreamTimeout`` when their deadline
    passes and ``UpstreamError`` for transport or auth failures.
    """

    @abstractmethod
    async def invoke(self, prompt: str, context: Mapping[str, Any] | None = None) -> str:
        """Return the capability's text response to *prompt*."""


class ChatModelReasoner(ReasoningCapability):
    """Reasoning capability backed by a LangChain chat model.

    Parameters
    ----------
    model:
        Any ``BaseChatModel`` (``ChatAnthropic``, ``ChatOpenAI``, a mock).
    timeout:
        Per-call deadline in seconds.
    system_prompt:
        Optional system message sent before every prompt.  A ``"system"``
        key in the call's *context* overrides it.
    """

    def __init__(
        self,
        model: BaseChatModel,
        timeout: float = 30.0,
        system_prompt: str = "",
    ) -> None:
        self.model = model
        self.timeout = timeout
        self.system_prompt = system_prompt

    def _build_messages(
        self, prompt: str, context: Mapping[str, Any] | None
    ) -> list[BaseMessage]:
        extra = dict(context or {})
        system = extra.pop("system", None) or self.system_prompt
        messages: list[BaseMessage] = []
        if system:
            messages.append(SystemMessage(content=str(system)))
        if extra:
            prompt = f"{prompt}\n\nContext:\n{json.dumps(extra, default=str, indent=2)}"
        messages.append(HumanMessage(content=prompt))
        return messages

    async def invoke(self, prompt: str, context: Mapping[str, Any] | None = None) -> str:
        messages = self._build_messages(prompt, context)
        try:
            response = await asyncio.wait_for(self.model.ainvoke(messages), self.timeout)
        except asyncio.TimeoutError as exc:
            raise UpstreamTimeout(
                f"Reasoning call exceeded {self.timeout:g}s", timeout=self.timeout
            ) from exc
        except Exception as exc:
            raise UpstreamError(f"Reasoning call failed: {exc}", cause=exc) from exc
        return _message_text(response)


class TimeoutReasoner(ReasoningCapability):
    """Puts a deadline on every call to another capability.

    A call that overruns is cancelled and reported as ``UpstreamTimeout``;
    everything else the wrapped capability raises passes through unchanged.
    """

    def __init__(self, inner: ReasoningCapability, timeout: float = 30.0) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {timeout}")
        self.inner = inner
        self.timeout = timeout

    async def invoke(self, prompt: str, context: Mapping[str, Any] | None = None) -> str:
        try:
            async with asyncio.timeout(self.timeout):
                return await self.inner.invoke(prompt, context)
        except TimeoutError as exc:
            logger.warning("Reasoning call exceeded %.1fs, cancelled", self.timeout)
            raise UpstreamTimeout(
                f"Reasoning call exceeded {self.timeout:g}s", timeout=self.timeout
            ) from exc


def _message_text(message: Any) -> str:
    """Flatten a chat message's content (string or content blocks) into text."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, Mapping) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content)


# ===================================================================== #
#  Structured parsing                                                    #
# ===================================================================== #

def parse_structured(text: str, schema: type[SchemaT]) -> SchemaT:
    """Parse a JSON response (optionally in a markdown fence) into *schema*.

    Raises
    ------
    MalformedResponse
        If no JSON object can be extracted or it does not fit *schema*.
    """
    try:
        data = parse_json_markdown(text)
    except (ValueError, TypeError) as exc:
        raise MalformedResponse(
            f"Expected JSON for {schema.__name__}: {exc}", raw=text
        ) from exc
    if isinstance(data, list) and "items" in schema.model_fields:
        data = {"items": data}
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponse(
            f"Response does not match {schema.__name__}: {exc.error_count()} error(s)",
            raw=text,
            details={"errors": exc.errors(include_url=False)},
        ) from exc


# ===================================================================== #
#  Chat model factory                                                    #
# ===================================================================== #

def create_chat_model(config: ReasoningConfig) -> BaseChatModel:
    """Instantiate the chat model named by *config*.

    Provider packages are imported on demand so only the one in use needs
    to be installed.
    """
    config.validate()
    if config.provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )
    if config.provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
        )
    from discovery_compounding.testing.mock_llm import MockChatModel

    return MockChatModel()
