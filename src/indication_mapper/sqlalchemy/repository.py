"""
Indication repository.

Durable store for drug indications, partitioned by canonical drug name.
Rows for a drug are only ever replaced as a whole set; single-record
update and delete exist for curation.
"""

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from indication_mapper.helpers.drug_helpers import canonicalize_drug_name
from indication_mapper.models.model_indication import (
    ClassifiedIndication,
    IndicationUpdate,
    PersistedIndication,
)
from indication_mapper.sqlalchemy.drug_indications import DrugIndications

logger = logging.getLogger(__name__)


class IndicationRepository:
    """SQLAlchemy-backed store. Each method runs in its own transaction."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def close(self) -> None:
        """Dispose the engine's connection pool."""
        engine = self._session_factory.kw.get("bind")
        if engine is not None:
            engine.dispose()

    @staticmethod
    def _to_model(row: DrugIndications) -> PersistedIndication:
        return PersistedIndication.model_validate(row)

    def bulk_replace(
        self, drug_name: str, indications: Sequence[ClassifiedIndication]
    ) -> list[PersistedIndication]:
        """Delete every row for drug_name and insert indications in one transaction."""
        canonical = canonicalize_drug_name(drug_name)
        with self._session_factory.begin() as session:
            deleted = session.execute(
                delete(DrugIndications)
                .where(func.lower(DrugIndications.drug_name) == canonical.lower())
                .execution_options(synchronize_session=False)
            ).rowcount
            rows = [
                DrugIndications(
                    drug_name=canonical,
                    position=position,
                    title=indication.title,
                    text=indication.text,
                    icd10_code=indication.code,
                    icd10_description=indication.description,
                )
                for position, indication in enumerate(indications)
            ]
            session.add_all(rows)
            session.flush()
            result = [self._to_model(row) for row in rows]

        logger.info(
            "Replaced indications for %s: %d removed, %d inserted",
            canonical,
            deleted,
            len(result),
        )
        return result

    def find_by_drug(self, drug_name: str) -> list[PersistedIndication]:
        """Return indications for drug_name in label order, matching any casing."""
        canonical = canonicalize_drug_name(drug_name)
        with self._session_factory() as session:
            rows = session.scalars(
                select(DrugIndications)
                .where(func.lower(DrugIndications.drug_name) == canonical.lower())
                .order_by(DrugIndications.position)
            ).all()
            return [self._to_model(row) for row in rows]

    def find_all(self) -> list[PersistedIndication]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(DrugIndications).order_by(
                    DrugIndications.drug_name, DrugIndications.title
                )
            ).all()
            return [self._to_model(row) for row in rows]

    def find_one(self, indication_id: UUID) -> PersistedIndication | None:
        with self._session_factory() as session:
            row = session.get(DrugIndications, indication_id)
            return self._to_model(row) if row is not None else None

    def update(
        self, indication_id: UUID, changes: IndicationUpdate
    ) -> PersistedIndication | None:
        """Replace the content fields of one row. Returns None if it does not exist."""
        with self._session_factory.begin() as session:
            row = session.get(DrugIndications, indication_id)
            if row is None:
                return None
            row.title = changes.title
            row.text = changes.text
            row.icd10_code = changes.code
            row.icd10_description = changes.description
            session.flush()
            session.refresh(row)
            return self._to_model(row)

    def delete(self, indication_id: UUID) -> PersistedIndication | None:
        """Delete one row and return what was deleted, or None if it did not exist."""
        with self._session_factory.begin() as session:
            row = session.get(DrugIndications, indication_id)
            if row is None:
                return None
            deleted = self._to_model(row)
            session.delete(row)
            return deleted
