"""
SPL label parser.

Locates the INDICATIONS AND USAGE section of a DailyMed SPL document and
turns its paragraphs into ordered ``RawIndication`` records.

Parsing happens in two steps:
  1. extract_content_nodes — classify each paragraph as a NarrativeFragment,
     TitleMarker or InlineValue
  2. build_indications     — single pass over those nodes, splitting the
     narrative into one indication per title marker

A document that lacks the expected structure is not an error: parse_label
returns a ParseResult whose outcome names what was missing.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Sequence
from enum import Enum

from pydantic import BaseModel

from indication_mapper.constants import (
    DEFAULT_PREAMBLE_MARKERS,
    INDICATIONS_LOINC_CODE,
    INDICATIONS_SECTION_ID,
)
from indication_mapper.models.model_indication import RawIndication
from indication_mapper.models.model_label import (
    ContentNode,
    InlineValue,
    NarrativeFragment,
    TitleMarker,
)

logger = logging.getLogger(__name__)


class ParseOutcome(str, Enum):
    OK = "ok"
    MISSING_DOCUMENT = "missing_document"
    MISSING_COMPONENTS = "missing_components"
    MISSING_INDICATIONS_SECTION = "missing_indications_section"


OUTCOME_MESSAGES: dict[ParseOutcome, str] = {
    ParseOutcome.MISSING_DOCUMENT: "No document found in XML",
    ParseOutcome.MISSING_COMPONENTS: "No components found in document",
    ParseOutcome.MISSING_INDICATIONS_SECTION: "No indications section found",
}


class ParseResult(BaseModel):
    """Outcome of parsing one label; indications is None unless outcome is OK."""

    outcome: ParseOutcome
    indications: list[RawIndication] | None = None

    @property
    def found(self) -> bool:
        return self.outcome is ParseOutcome.OK

    @property
    def message(self) -> str | None:
        return OUTCOME_MESSAGES.get(self.outcome)


# ---------------------------------------------------------------------------
# Element helpers (namespace-agnostic)
# ---------------------------------------------------------------------------


def _local(tag: object) -> str:
    """Return the tag name without its ``{namespace}`` prefix."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in elem if _local(child.tag) == name]


def _child(elem: ET.Element, name: str) -> ET.Element | None:
    for child in elem:
        if _local(child.tag) == name:
            return child
    return None


def _path(elem: ET.Element, *names: str) -> ET.Element | None:
    for name in names:
        elem = _child(elem, name)
        if elem is None:
            return None
    return elem


def _normalize(parts: Iterable[str | None]) -> str:
    """Join text parts and collapse all runs of whitespace to one space."""
    return " ".join("".join(p for p in parts if p).split())


def _text(elem: ET.Element) -> str:
    return _normalize(elem.itertext())


# ---------------------------------------------------------------------------
# Document navigation
# ---------------------------------------------------------------------------


def _find_sections(document: ET.Element) -> list[ET.Element] | None:
    """Return the sections under document/component/structuredBody/component."""
    components: list[ET.Element] = []
    for component in _children(document, "component"):
        body = _child(component, "structuredBody")
        if body is not None:
            components.extend(_children(body, "component"))
    if not components:
        return None

    sections = []
    for component in components:
        section = _child(component, "section")
        if section is not None:
            sections.append(section)
    return sections


def _section_id(section: ET.Element) -> str | None:
    if "ID" in section.attrib:
        return section.attrib["ID"]
    id_elem = _child(section, "ID")
    return _text(id_elem) if id_elem is not None else None


def _is_indications_section(section: ET.Element, section_id: str) -> bool:
    if _section_id(section) == section_id:
        return True
    code = _child(section, "code")
    return code is not None and code.get("code") == INDICATIONS_LOINC_CODE


# ---------------------------------------------------------------------------
# Node extraction
# ---------------------------------------------------------------------------


def _text_outside(paragraph: ET.Element, skip: ET.Element) -> str:
    """Text of paragraph excluding the subtree of skip (tails are kept)."""
    parts: list[str | None] = [paragraph.text]
    for child in paragraph:
        if child is not skip:
            parts.extend(child.itertext())
        parts.append(child.tail)
    return _normalize(parts)


def extract_content_nodes(section: ET.Element) -> list[ContentNode]:
    """Classify the paragraphs of a section's highlights excerpt.

    Falls back to the section's own text block when it has no excerpt.
    Paragraphs with no text are dropped.
    """
    block = _path(section, "excerpt", "highlight", "text")
    if block is None:
        block = _child(section, "text")
    if block is None:
        return []

    nodes: list[ContentNode] = []
    for paragraph in _children(block, "paragraph"):
        content = _child(paragraph, "content")
        if content is not None:
            title = _text(content)
            if title:
                nodes.append(TitleMarker(title=title))
            rest = _text_outside(paragraph, content)
            if rest:
                nodes.append(InlineValue(text=rest))
            continue

        text = _text(paragraph)
        if not text:
            continue
        if paragraph.attrib or len(paragraph):
            nodes.append(InlineValue(text=text))
        else:
            nodes.append(NarrativeFragment(text=text))
    return nodes


# ---------------------------------------------------------------------------
# Indication assembly
# ---------------------------------------------------------------------------


def _is_preamble(text: str, markers: Sequence[str]) -> bool:
    folded = text.casefold()
    return any(marker.casefold() in folded for marker in markers)


def build_indications(
    nodes: Sequence[ContentNode],
    preamble_markers: Sequence[str] = DEFAULT_PREAMBLE_MARKERS,
) -> list[RawIndication]:
    """Split an ordered node sequence into indications, one per title marker.

    The first narrative fragment is dropped when it contains a preamble
    marker. Text before the first title marker becomes an indication with
    an empty title.
    """
    indications: list[RawIndication] = []
    current_title = ""
    fragments: list[str] = []
    seen_narrative = False
    seen_title = False

    def flush() -> None:
        if fragments:
            indications.append(RawIndication(title=current_title, text=" ".join(fragments)))
            fragments.clear()

    for node in nodes:
        if isinstance(node, TitleMarker):
            flush()
            current_title = node.title
            seen_title = True
        elif isinstance(node, NarrativeFragment):
            first = not seen_narrative
            seen_narrative = True
            if first and _is_preamble(node.text, preamble_markers):
                logger.debug("Skipping preamble fragment: %.80s", node.text)
                continue
            fragments.append(node.text)
        else:
            fragments.append(node.text)

    flush()

    if indications and not seen_title:
        logger.debug("No title markers in section; returning one untitled indication")
    return indications


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def parse_label(
    xml_text: str,
    section_id: str = INDICATIONS_SECTION_ID,
    preamble_markers: Sequence[str] = DEFAULT_PREAMBLE_MARKERS,
) -> ParseResult:
    """Parse raw SPL XML into the indications of its INDICATIONS AND USAGE section."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        logger.warning("Label XML could not be parsed: %s", e)
        return ParseResult(outcome=ParseOutcome.MISSING_DOCUMENT)

    if _local(root.tag) != "document":
        return ParseResult(outcome=ParseOutcome.MISSING_DOCUMENT)

    sections = _find_sections(root)
    if sections is None:
        return ParseResult(outcome=ParseOutcome.MISSING_COMPONENTS)

    section = next((s for s in sections if _is_indications_section(s, section_id)), None)
    if section is None:
        return ParseResult(outcome=ParseOutcome.MISSING_INDICATIONS_SECTION)

    nodes = extract_content_nodes(section)
    return ParseResult(
        outcome=ParseOutcome.OK,
        indications=build_indications(nodes, preamble_markers),
    )
