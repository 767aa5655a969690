"""
Factory functions that wire the search pipeline from settings.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from indication_mapper.config import Settings, get_settings
from indication_mapper.data_sources.dailymed import DailyMedClient
from indication_mapper.db.base import create_db_engine, create_session_factory, init_db
from indication_mapper.services.cache import IndicationCache, create_redis_client
from indication_mapper.services.classifier import ICD10Classifier
from indication_mapper.services.indications import IndicationService
from indication_mapper.services.search import SearchOrchestrator
from indication_mapper.sqlalchemy.repository import IndicationRepository

logger = logging.getLogger(__name__)


def create_orchestrator(settings: Settings | None = None) -> SearchOrchestrator:
    """Create a fully-wired SearchOrchestrator.

    The caller owns the returned orchestrator's resources; prefer
    `open_orchestrator` which closes them.
    """
    settings = settings or get_settings()

    engine = create_db_engine(settings.database_url)
    init_db(engine)
    repository = IndicationRepository(create_session_factory(engine))
    logger.info("Created IndicationRepository")

    cache = IndicationCache(
        create_redis_client(settings),
        search_ttl=settings.search_cache_ttl,
        record_ttl=settings.record_cache_ttl,
    )

    return SearchOrchestrator(
        fetcher=DailyMedClient(
            base_url=settings.dailymed_base_url,
            timeout=settings.http_timeout,
            archive_dir=settings.label_archive_dir,
            archive=settings.archive_labels,
        ),
        classifier=ICD10Classifier(
            api_key=settings.openai_api_key,
            model=settings.classification_model,
            temperature=settings.classification_temperature,
            timeout=settings.classification_timeout,
        ),
        indications=IndicationService(repository, cache),
        cache=cache,
        section_id=settings.indications_section_id,
        preamble_markers=settings.preamble_markers,
    )


@asynccontextmanager
async def open_orchestrator(
    settings: Settings | None = None,
) -> AsyncIterator[SearchOrchestrator]:
    """Yield a SearchOrchestrator, then close its HTTP sessions, Redis client and engine."""
    orchestrator = create_orchestrator(settings)
    try:
        yield orchestrator
    finally:
        await orchestrator.fetcher.close()
        await orchestrator.classifier.close()
        await orchestrator.cache.close()
        orchestrator.indications.repository.close()
