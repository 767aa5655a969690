"""
Cache-aside access to persisted indications.

Reads try Redis first and fill it from the repository on a miss. Every
mutation writes to the repository first, then invalidates the drug list,
the aggregate list and (for single records) the record key before
returning. Repository calls run in a worker thread so the event loop is
never blocked on the database.
"""

import asyncio
import logging
from collections.abc import Sequence
from uuid import UUID

from indication_mapper.models.model_indication import (
    ClassifiedIndication,
    IndicationUpdate,
    PersistedIndication,
)
from indication_mapper.services.cache import IndicationCache
from indication_mapper.sqlalchemy.repository import IndicationRepository

logger = logging.getLogger(__name__)


class IndicationService:
    def __init__(self, repository: IndicationRepository, cache: IndicationCache) -> None:
        self.repository = repository
        self.cache = cache

    # -- Reads ----------------------------------------------------------------

    async def get_for_drug(self, drug_name: str) -> list[PersistedIndication]:
        cached = await self.cache.get_drug(drug_name)
        if cached is not None:
            return cached
        indications = await asyncio.to_thread(self.repository.find_by_drug, drug_name)
        if indications:
            await self.cache.set_drug(drug_name, indications)
        return indications

    async def get_all(self) -> list[PersistedIndication]:
        cached = await self.cache.get_all()
        if cached is not None:
            return cached
        indications = await asyncio.to_thread(self.repository.find_all)
        await self.cache.set_all(indications)
        return indications

    async def get_one(self, indication_id: UUID) -> PersistedIndication | None:
        cached = await self.cache.get_record(indication_id)
        if cached is not None:
            return cached
        indication = await asyncio.to_thread(self.repository.find_one, indication_id)
        if indication is not None:
            await self.cache.set_record(indication)
        return indication

    # -- Mutations ------------------------------------------------------------

    async def replace_for_drug(
        self, drug_name: str, indications: Sequence[ClassifiedIndication]
    ) -> list[PersistedIndication]:
        """Overwrite every stored indication for drug_name."""
        persisted = await asyncio.to_thread(
            self.repository.bulk_replace, drug_name, indications
        )
        await self.cache.invalidate_drug(drug_name)
        return persisted

    async def update(
        self, indication_id: UUID, changes: IndicationUpdate
    ) -> PersistedIndication | None:
        updated = await asyncio.to_thread(self.repository.update, indication_id, changes)
        if updated is None:
            logger.info("Indication %s not found for update", indication_id)
            return None
        await self.cache.invalidate_record(indication_id, updated.drug_name)
        return updated

    async def delete(self, indication_id: UUID) -> bool:
        deleted = await asyncio.to_thread(self.repository.delete, indication_id)
        if deleted is None:
            logger.info("Indication %s not found for delete", indication_id)
            return False
        await self.cache.invalidate_record(indication_id, deleted.drug_name)
        return True
