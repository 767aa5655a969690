"""Content nodes of an SPL section.

A section's paragraphs come in three shapes, modelled here as a tagged
union so the parser dispatches on type instead of probing for fields.
"""

from typing import Literal

from pydantic import BaseModel


class NarrativeFragment(BaseModel):
    """A plain paragraph of running text."""

    kind: Literal["narrative"] = "narrative"
    text: str


class TitleMarker(BaseModel):
    """A paragraph wrapping a ``<content>`` element; starts a new indication."""

    kind: Literal["title"] = "title"
    title: str


class InlineValue(BaseModel):
    """A paragraph carrying attributes alongside its direct text payload."""

    kind: Literal["inline"] = "inline"
    text: str


ContentNode = NarrativeFragment | TitleMarker | InlineValue
