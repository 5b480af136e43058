"""Prompt template engine: interpolates the stored transcription into a prompt."""

from __future__ import annotations

TRANSCRIPTION_PLACEHOLDER = "{transcription}"


def resolve(template: str, transcription: str) -> str:
    """Replace every ``{transcription}`` in *template* with *transcription*.

    No other substitution syntax is recognised: braces, ``{{...}}`` and
    ``$vars`` are left alone. A template without the placeholder comes back
    unchanged.
    """
    return template.replace(TRANSCRIPTION_PLACEHOLDER, transcription)
