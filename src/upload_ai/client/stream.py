"""Single-consumer stream of completion chunks."""

from __future__ import annotations

from typing import AsyncIterator


class CompletionStream:
    """Lazy, finite, non-replayable sequence of text chunks.

    Iterate it once with ``async for``; a second iteration raises
    ``RuntimeError``. A stream that ends because of a provider failure (or
    that is cut off before its terminal event) raises ``GenerationError``,
    so a normal end is never confused with a truncated one. Call
    :meth:`aclose` to abandon it early.
    """

    def __init__(self, source: AsyncIterator[str]):
        self._source = source
        self._started = False
        self.completed = False

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("Completion stream can only be consumed once")
        self._started = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        async for chunk in self._source:
            yield chunk
        self.completed = True

    async def text(self) -> str:
        """Drain the stream and return the concatenated text."""
        return "".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> "CompletionStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
