"""
Search orchestrator: drug name in, persisted ICD-10-mapped indications out.

Stages:
    CACHE_CHECK -> (hit) DONE
    CACHE_CHECK -> (miss) FETCHING -> PARSING -> CLASSIFYING -> PERSISTING
                -> CACHE_WARM -> DONE

"Not found" at any stage ends the search with an empty list. Infrastructure
failures are logged with the stage they happened in and re-raised
unchanged so the caller can decide on retry and backoff.
"""

import logging
from collections.abc import Sequence
from enum import Enum

from indication_mapper.constants import DEFAULT_PREAMBLE_MARKERS, INDICATIONS_SECTION_ID
from indication_mapper.data_sources.base_client import DataSourceError, LabelNotFoundError
from indication_mapper.data_sources.dailymed import DailyMedClient
from indication_mapper.helpers.drug_helpers import canonicalize_drug_name
from indication_mapper.models.model_indication import PersistedIndication
from indication_mapper.parsing.label_parser import parse_label
from indication_mapper.services.cache import IndicationCache
from indication_mapper.services.classifier import ICD10Classifier
from indication_mapper.services.indications import IndicationService

logger = logging.getLogger(__name__)


class SearchStage(str, Enum):
    CACHE_CHECK = "cache_check"
    FETCHING = "fetching"
    PARSING = "parsing"
    CLASSIFYING = "classifying"
    PERSISTING = "persisting"
    CACHE_WARM = "cache_warm"
    DONE = "done"


class SearchOrchestrator:
    """Runs one linear pipeline per search. Holds no per-search state."""

    def __init__(
        self,
        fetcher: DailyMedClient,
        classifier: ICD10Classifier,
        indications: IndicationService,
        cache: IndicationCache,
        section_id: str = INDICATIONS_SECTION_ID,
        preamble_markers: Sequence[str] = DEFAULT_PREAMBLE_MARKERS,
    ) -> None:
        self.fetcher = fetcher
        self.classifier = classifier
        self.indications = indications
        self.cache = cache
        self.section_id = section_id
        self.preamble_markers = tuple(preamble_markers)

    async def search(self, drug_name: str) -> list[PersistedIndication]:
        """Return the stored indications for drug_name, refreshing them on a cache miss."""
        if not canonicalize_drug_name(drug_name):
            logger.info("Blank drug name %r, nothing to search", drug_name)
            return []

        stage = SearchStage.CACHE_CHECK
        try:
            cached = await self.cache.get_drug(drug_name)
            if cached:
                logger.info("Cache hit for %r (%d indications)", drug_name, len(cached))
                return cached

            stage = SearchStage.FETCHING
            set_id = await self.fetcher.search_set_id(drug_name)
            if set_id is None:
                return []
            try:
                xml_text = await self.fetcher.fetch_label(set_id)
            except LabelNotFoundError as e:
                logger.warning("Label %s for %r not found: %s", set_id, drug_name, e)
                return []

            stage = SearchStage.PARSING
            result = parse_label(
                xml_text,
                section_id=self.section_id,
                preamble_markers=self.preamble_markers,
            )
            if not result.found:
                logger.error("%s (drug=%r, set_id=%s)", result.message, drug_name, set_id)
                return []
            raw = result.indications or []
            logger.info("Parsed %d indications for %r from %s", len(raw), drug_name, set_id)

            stage = SearchStage.CLASSIFYING
            if not raw:
                return []
            classified = await self.classifier.classify(raw)
            if not classified:
                logger.warning(
                    "Classification returned nothing for %r; keeping stored data", drug_name
                )
                return []

            stage = SearchStage.PERSISTING
            persisted = await self.indications.replace_for_drug(drug_name, classified)

            stage = SearchStage.CACHE_WARM
            await self.cache.set_drug(drug_name, persisted)

            stage = SearchStage.DONE
            return persisted

        except DataSourceError as e:
            logger.error("Search for %r failed at %s: %s", drug_name, stage.value, e)
            raise
        except Exception:
            logger.exception("Search for %r failed at %s", drug_name, stage.value)
            raise
