"""Data models for IndicationMapper."""

from indication_mapper.models.model_indication import (
    ClassifiedIndication,
    IndicationUpdate,
    PersistedIndication,
    RawIndication,
)
from indication_mapper.models.model_label import (
    ContentNode,
    InlineValue,
    NarrativeFragment,
    TitleMarker,
)

__all__ = [
    "ClassifiedIndication",
    "ContentNode",
    "IndicationUpdate",
    "InlineValue",
    "NarrativeFragment",
    "PersistedIndication",
    "RawIndication",
    "TitleMarker",
]
