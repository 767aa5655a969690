"""
DailyMed SPL client.

Two methods:
  1. search_set_id — Resolve a drug name to the SET ID of its first label
  2. fetch_label   — Download the raw SPL XML for a SET ID
"""

from __future__ import annotations

import logging
from pathlib import Path

from indication_mapper.config import get_settings
from indication_mapper.constants import DAILYMED_SEARCH_PAGE_SIZE
from indication_mapper.data_sources.base_client import (
    BaseClient,
    DataSourceError,
    LabelNotFoundError,
    NetworkError,
    RequestContext,
)

logger = logging.getLogger("indication_mapper.data_sources.dailymed")


class DailyMedClient(BaseClient):
    """Client for the DailyMed v2 web services."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        archive_dir: Path | None = None,
        archive: bool | None = None,
    ) -> None:
        settings = get_settings()
        super().__init__(timeout=timeout if timeout is not None else settings.http_timeout)
        self.base_url = (base_url or settings.dailymed_base_url).rstrip("/")
        self.archive_dir = archive_dir if archive_dir is not None else settings.label_archive_dir
        self.archive = archive if archive is not None else settings.archive_labels

    @property
    def _source_name(self) -> str:
        return "dailymed"

    # -- Public methods -------------------------------------------------------

    async def search_set_id(self, drug_name: str) -> str | None:
        """Return the SET ID of the first label matching drug_name, or None."""
        params = {
            "drug_name": drug_name,
            "page": 1,
            "pagesize": DAILYMED_SEARCH_PAGE_SIZE,
        }
        context = RequestContext(
            source=self._source_name, method="search_set_id", params=params
        )
        try:
            data = await self._rest_get(f"{self.base_url}/spls.json", params, context=context)
        except DataSourceError as e:
            logger.error("Error fetching SET ID for drug %r: %s", drug_name, e)
            if isinstance(e, NetworkError):
                raise
            raise NetworkError(e.source, str(e), status_code=e.status_code) from e

        matches = (data or {}).get("data") or []
        set_id = matches[0].get("setid") if matches else None
        if not set_id:
            logger.info("No DailyMed label found for drug %r", drug_name)
            return None
        return set_id

    async def fetch_label(self, set_id: str) -> str:
        """Return the raw SPL XML for set_id.

        Raises LabelNotFoundError on 404 and NetworkError for any other
        failure. A successful download is archived once per SET ID.
        """
        context = RequestContext(
            source=self._source_name, method="fetch_label", params={"set_id": set_id}
        )
        try:
            xml_text = await self._rest_get_xml(
                f"{self.base_url}/spls/{set_id}.xml", context=context
            )
        except DataSourceError as e:
            logger.error("Error fetching label for SET ID %s: %s", set_id, e)
            if e.status_code == 404:
                raise LabelNotFoundError(
                    self._source_name, f"No label for SET ID {set_id}", status_code=404
                ) from e
            if isinstance(e, NetworkError):
                raise
            raise NetworkError(e.source, str(e), status_code=e.status_code) from e

        self._archive(set_id, xml_text)
        return xml_text

    # -- Private helpers ------------------------------------------------------

    def _archive(self, set_id: str, xml_text: str) -> None:
        """Write the label to the archive directory unless already present."""
        if not self.archive:
            return
        path = self.archive_dir / f"{set_id}.xml"
        try:
            if path.exists():
                return
            self.archive_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(xml_text, encoding="utf-8")
            logger.info("Label XML saved to %s", path)
        except OSError as e:
            logger.warning("Could not archive label %s to %s: %s", set_id, path, e)
