"""Default prompt catalog served when no external catalog is configured."""

from __future__ import annotations

from upload_ai.models.video import PromptTemplate

YOUTUBE_TITLE_TEMPLATE = """\
Your job is to write three titles for a YouTube video.

Below you will receive the transcription of that video; use it to write the titles.
Below you will also receive a list of titles; use that list as a reference for the titles you write.

The titles must be at most 60 characters long.
The titles must be catchy and appealing to maximise clicks.

Return ONLY the three titles as a list, like the example below:
'''
- Title 1
- Title 2
- Title 3
'''

Transcription:
'''
{transcription}
'''"""

YOUTUBE_DESCRIPTION_TEMPLATE = """\
Your job is to write a short summary of a YouTube video.

Below you will receive the transcription of that video; use it to write the summary.

The summary must be at most 80 words long, written in the first person
from the point of view of whoever is speaking in the video.

Use direct, engaging language. Use keywords from the transcription and
avoid generic filler. After the summary, add a list of hashtags in
lowercase containing 3 to 10 keywords from the video.

The response must follow this format:
'''
Summary.

#hashtag1 #hashtag2 #hashtag3 ...
'''

Transcription:
'''
{transcription}
'''"""

DEFAULT_PROMPTS: tuple[PromptTemplate, ...] = (
    PromptTemplate(
        id="youtube-title",
        title="YouTube title",
        template=YOUTUBE_TITLE_TEMPLATE,
    ),
    PromptTemplate(
        id="youtube-description",
        title="YouTube description",
        template=YOUTUBE_DESCRIPTION_TEMPLATE,
    ),
)
