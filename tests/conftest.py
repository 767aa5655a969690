"""Pytest configuration and fixtures."""

import textwrap

import pytest

from indication_mapper.db.base import create_db_engine, create_session_factory, init_db
from indication_mapper.models.model_indication import ClassifiedIndication
from indication_mapper.services.cache import IndicationCache
from indication_mapper.services.indications import IndicationService
from indication_mapper.sqlalchemy.repository import IndicationRepository


class FakeRedis:
    """In-process stand-in for redis.asyncio.Redis (get/set/delete only)."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def aclose(self) -> None:
        pass


def make_label(paragraphs: str, section: str = '<section ID="S1">') -> str:
    """Wrap paragraph markup in a minimal SPL document with one section."""
    return textwrap.dedent(
        f"""\
        <document xmlns="urn:hl7-org:v3">
          <component>
            <structuredBody>
              <component>
                {section}
                  <excerpt>
                    <highlight>
                      <text>
                        {paragraphs}
                      </text>
                    </highlight>
                  </excerpt>
                </section>
              </component>
            </structuredBody>
          </component>
        </document>
        """
    ).strip()


DUPIXENT_LABEL = make_label(
    """
    <paragraph>DUPIXENT is an interleukin-4 receptor alpha antagonist indicated:</paragraph>
    <paragraph><content styleCode="underline">Atopic Dermatitis</content></paragraph>
    <paragraph styleCode="Bullet">treatment of moderate-to-severe atopic dermatitis</paragraph>
    <paragraph><content styleCode="underline">Asthma</content></paragraph>
    <paragraph>add-on maintenance   treatment</paragraph>
    <paragraph>of moderate-to-severe asthma</paragraph>
    """
)


@pytest.fixture
def dupixent_label() -> str:
    return DUPIXENT_LABEL


@pytest.fixture
def label_factory():
    """The make_label helper, for tests that build their own sections."""
    return make_label


@pytest.fixture
def classified() -> list[ClassifiedIndication]:
    """Sample classification output for the Dupixent label."""
    return [
        ClassifiedIndication(
            title="Atopic Dermatitis",
            text="treatment of moderate-to-severe atopic dermatitis",
            code="L20.9",
            description="Atopic dermatitis, unspecified",
        ),
        ClassifiedIndication(
            title="Asthma",
            text="add-on maintenance treatment of moderate-to-severe asthma",
            code="J45.909",
            description="Unspecified asthma, uncomplicated",
        ),
    ]


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis: FakeRedis) -> IndicationCache:
    return IndicationCache(fake_redis, search_ttl=86400, record_ttl=3600)


@pytest.fixture
def repository() -> IndicationRepository:
    """Repository over a fresh in-memory SQLite database."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield IndicationRepository(create_session_factory(engine))
    engine.dispose()


@pytest.fixture
def indication_service(
    repository: IndicationRepository, cache: IndicationCache
) -> IndicationService:
    return IndicationService(repository, cache)
