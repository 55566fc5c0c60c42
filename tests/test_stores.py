import asyncio
from contextlib import asynccontextmanager
from datetime import timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from papernotes.core.exceptions import PersistenceError
from papernotes.core.models import EmbeddingRecord, Note, Segment
from papernotes.core.types import Found, NotFound, StoreError
from papernotes.db import Base, PaperStore, QaRepo, QaStore, models

NOTES = [
    Note(note="Introduces the Transformer.", page_numbers=[1, 2]),
    Note(note="BLEU 28.4 on WMT 2014 EN-DE.", page_numbers=[]),
]


@asynccontextmanager
async def sqlite_sessions(create_tables: bool = True):
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()


def test_add_then_get_paper_round_trip():
    async def scenario():
        async with sqlite_sessions() as factory:
            store = PaperStore(factory)
            await store.add_paper(paper="P", url="U", name="N", notes=NOTES)
            return await store.get_paper("U")

    record = asyncio.run(scenario())

    assert record is not None
    assert record.paper == "P"
    assert record.name == "N"
    assert record.url == "U"
    assert record.notes == NOTES


def test_duplicate_url_returns_first_row():
    async def scenario():
        async with sqlite_sessions() as factory:
            store = PaperStore(factory)
            await store.add_paper(paper="v1", url="U", name="first", notes=[])
            await store.add_paper(paper="v2", url="U", name="second", notes=[])
            return await store.get_paper("U")

    record = asyncio.run(scenario())
    assert record.name == "first"


def test_get_absent_paper_returns_none():
    async def scenario():
        async with sqlite_sessions() as factory:
            store = PaperStore(factory)
            return await store.get_paper("missing"), await store.lookup_paper("missing")

    record, lookup = asyncio.run(scenario())
    assert record is None
    assert lookup == NotFound(url="missing")


def test_lookup_distinguishes_store_errors():
    async def scenario():
        async with sqlite_sessions(create_tables=False) as factory:
            store = PaperStore(factory)
            return await store.get_paper("U"), await store.lookup_paper("U")

    record, lookup = asyncio.run(scenario())
    assert record is None
    assert isinstance(lookup, StoreError)
    assert lookup.url == "U"


def test_lookup_found():
    async def scenario():
        async with sqlite_sessions() as factory:
            store = PaperStore(factory)
            await store.add_paper(paper="P", url="U", name="N", notes=NOTES)
            return await store.lookup_paper("U")

    lookup = asyncio.run(scenario())
    assert isinstance(lookup, Found)
    assert lookup.record.paper == "P"


def test_add_paper_failure_raises_persistence_error():
    async def scenario():
        async with sqlite_sessions(create_tables=False) as factory:
            await PaperStore(factory).add_paper(paper="P", url="U", name="N", notes=[])

    with pytest.raises(PersistenceError) as info:
        asyncio.run(scenario())
    assert "papers" in str(info.value)


def test_save_qa_persists_one_record():
    async def scenario():
        async with sqlite_sessions() as factory:
            await QaStore(factory).save_qa("Q?", "A.", "ctx", ["Next?"])
            async with factory() as session:
                return await QaRepo(session).list()

    rows = asyncio.run(scenario())
    assert len(rows) == 1
    assert (rows[0].question, rows[0].answer, rows[0].context) == ("Q?", "A.", "ctx")
    assert rows[0].followup_questions == ["Next?"]


def test_save_qa_failure_propagates():
    async def scenario():
        async with sqlite_sessions(create_tables=False) as factory:
            await QaStore(factory).save_qa("Q?", "A.", "ctx", [])

    with pytest.raises(PersistenceError):
        asyncio.run(scenario())


def test_add_embeddings_tags_url_and_pages():
    embeddings = MagicMock()
    embeddings.embed_texts.return_value = [[0.1, 0.2], [0.3, 0.4]]
    index = MagicMock()
    store = PaperStore(MagicMock(), embeddings, index)
    segments = [Segment(text="a", page_number=1), Segment(text="b", page_number=3)]

    asyncio.run(store.add_embeddings(segments, {"url": "https://x.org/p.pdf"}))

    embeddings.embed_texts.assert_called_once_with(["a", "b"])
    (records,), _ = index.insert_embeddings.call_args
    assert records == [
        EmbeddingRecord(text="a", embedding=[0.1, 0.2], url="https://x.org/p.pdf", page_number=1),
        EmbeddingRecord(text="b", embedding=[0.3, 0.4], url="https://x.org/p.pdf", page_number=3),
    ]


def test_add_embeddings_failure_raises_persistence_error():
    embeddings = MagicMock()
    embeddings.embed_texts.return_value = [[0.1]]
    index = MagicMock()
    index.insert_embeddings.side_effect = RuntimeError("milvus down")
    store = PaperStore(MagicMock(), embeddings, index)

    with pytest.raises(PersistenceError):
        asyncio.run(store.add_embeddings([Segment(text="a")], {"url": "u.pdf"}))


def test_add_embeddings_requires_vector_store():
    store = PaperStore(MagicMock())
    with pytest.raises(PersistenceError):
        asyncio.run(store.add_embeddings([Segment(text="a")], {"url": "u.pdf"}))


def test_created_at_defaults_are_timezone_aware():
    for table in (models.Paper.__table__, models.QuestionAnswering.__table__):
        stamp = table.c.created_at.default.arg(None)
        assert stamp.tzinfo is timezone.utc
