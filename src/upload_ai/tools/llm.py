"""Text generation: streams chat-model completions through LangChain."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable

import structlog
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage

from upload_ai.config import settings
from upload_ai.errors import GenerationError

logger = structlog.get_logger()

ChatModelFactory = Callable[[float], BaseChatModel]


def build_chat_model(temperature: float) -> BaseChatModel:
    """Return the configured chat model for a single completion."""
    if settings.llm_provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=settings.anthropic_model,
            api_key=settings.anthropic_api_key or None,
            temperature=temperature,
            timeout=settings.provider_timeout_sec,
            max_retries=0,
        )
    if settings.llm_provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=settings.completion_model,
            api_key=settings.openai_api_key or None,
            temperature=temperature,
            timeout=settings.provider_timeout_sec,
            max_retries=0,
            streaming=True,
        )
    raise GenerationError(f"Unsupported LLM provider: {settings.llm_provider}")


def _chunk_text(content) -> str:
    # Anthropic streams content blocks; OpenAI streams plain strings.
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class CompletionProvider:
    """Streams completion chunks for a prompt, in generation order."""

    def __init__(self, model_factory: ChatModelFactory | None = None, chunk_timeout: float | None = None):
        self.model_factory = model_factory or build_chat_model
        self.chunk_timeout = chunk_timeout or settings.provider_timeout_sec

    async def generate(self, prompt: str, temperature: float) -> AsyncIterator[str]:
        """Yield text chunks as they arrive. Any failure raises ``GenerationError``."""
        try:
            model = self.model_factory(temperature)
            stream = model.astream([HumanMessage(content=prompt)])
        except GenerationError:
            raise
        except Exception as exc:
            raise GenerationError(f"Could not start generation: {exc}") from exc

        count = 0
        try:
            while True:
                try:
                    async with asyncio.timeout(self.chunk_timeout):
                        chunk = await anext(stream)
                except StopAsyncIteration:
                    break
                text = _chunk_text(chunk.content)
                if text:
                    count += 1
                    yield text
        except TimeoutError as exc:
            logger.error("llm.stream.timeout", chunks=count, timeout=self.chunk_timeout)
            raise GenerationError(
                f"Generation provider stalled for more than {self.chunk_timeout}s"
            ) from exc
        except GenerationError:
            raise
        except Exception as exc:
            logger.error("llm.stream.failed", chunks=count, error=str(exc))
            raise GenerationError(f"Generation provider failed: {exc}") from exc
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        logger.info("llm.stream.done", chunks=count)
