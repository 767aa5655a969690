"""FastAPI application."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request

from indication_mapper import __version__
from indication_mapper.config import get_settings
from indication_mapper.data_sources.base_client import DataSourceError, MissingCredentialError
from indication_mapper.factory import open_orchestrator
from indication_mapper.models.model_indication import PersistedIndication
from indication_mapper.services.search import SearchOrchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    async with open_orchestrator() as orchestrator:
        app.state.orchestrator = orchestrator
        yield


app = FastAPI(
    title="IndicationMapper API",
    description="Drug label indications mapped to ICD-10 codes",
    version=__version__,
    lifespan=lifespan,
)


def get_orchestrator(request: Request) -> SearchOrchestrator:
    return request.app.state.orchestrator


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/indications/search", response_model=list[PersistedIndication])
async def search_indications(
    name: str = Query(..., min_length=1, description="Drug name to search for"),
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
) -> list[PersistedIndication]:
    """Return ICD-10-mapped indications for a drug, an empty list if none are found."""
    try:
        return await orchestrator.search(name)
    except MissingCredentialError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except DataSourceError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
