import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from src.core.database import create_db_and_tables
from src.engines.wardrobe.models import Prenda
from src.engines.wardrobe.repositories import GarmentRepository


@pytest.fixture
async def repository(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/repo.db")
    await create_db_and_tables(bind=engine)
    yield GarmentRepository(sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    await engine.dispose()


def prenda(usuario_id="u1", tipo="prenda", minutes=0, **kwargs) -> Prenda:
    return Prenda(
        usuario_id=usuario_id,
        tipo=tipo,
        imagen_url=kwargs.pop("imagen_url", "https://cdn.test/prendas/x_clean.png"),
        descripcion=kwargs.pop("descripcion", "Camisa (azul) - casual"),
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=minutes),
        **kwargs
    )


@pytest.mark.asyncio
async def test_insert_assigns_id_and_keeps_json(repository):
    row = await repository.insert(prenda(metadata_ia=[{"nombre": "Camisa", "color": "azul"}]))

    assert row.id
    stored = await repository.list_by_user("u1")
    assert stored[0].metadata_ia == [{"nombre": "Camisa", "color": "azul"}]
    assert stored[0].genero == "unisex"


@pytest.mark.asyncio
async def test_list_newest_first_and_scoped_to_user(repository):
    older = await repository.insert(prenda(minutes=0))
    newer = await repository.insert(prenda(minutes=5))
    await repository.insert(prenda(usuario_id="someone-else", minutes=10))

    rows = await repository.list_by_user("u1")

    assert [r.id for r in rows] == [newer.id, older.id]


@pytest.mark.asyncio
async def test_type_filter_and_todos_sentinel(repository):
    await repository.insert(prenda(tipo="camisa", minutes=0))
    await repository.insert(prenda(tipo="zapatos", minutes=1))

    camisas = await repository.list_by_user("u1", "camisa")
    todos = await repository.list_by_user("u1", "Todos")
    unfiltered = await repository.list_by_user("u1")

    assert [r.tipo for r in camisas] == ["camisa"]
    assert [r.id for r in todos] == [r.id for r in unfiltered]
    assert len(todos) == 2


@pytest.mark.asyncio
async def test_unknown_user_gets_empty_list(repository):
    assert await repository.list_by_user("nobody") == []


@pytest.mark.asyncio
async def test_summaries_only_carry_context_columns(repository):
    await repository.insert(prenda(tipo="camisa", descripcion="Camisa (azul) - casual"))

    summaries = await repository.list_summaries("u1")

    assert summaries == [{"tipo": "camisa", "descripcion": "Camisa (azul) - casual", "genero": "unisex"}]


@pytest.mark.asyncio
async def test_delete_is_idempotent(repository):
    row = await repository.insert(prenda(imagen_url="https://cdn.test/prendas/a_clean.png"))

    assert await repository.get_image_url(row.id) == "https://cdn.test/prendas/a_clean.png"
    assert await repository.delete(row.id) == 1
    assert await repository.get_image_url(row.id) is None
    assert await repository.delete(row.id) == 0


@pytest.mark.asyncio
async def test_concurrent_inserts(repository):
    rows = await asyncio.gather(*(repository.insert(prenda(minutes=i)) for i in range(3)))

    assert len({r.id for r in rows}) == 3
    assert len(await repository.list_by_user("u1")) == 3


@pytest.mark.asyncio
async def test_default_timestamp_is_utc_aware_and_persists(repository):
    row = Prenda(usuario_id="u1", imagen_url="https://cdn.test/prendas/x_clean.png")
    assert row.created_at.tzinfo is not None
    assert row.created_at.utcoffset() == timedelta(0)

    await repository.insert(row)

    stored = await repository.list_by_user("u1")
    assert [r.id for r in stored] == [row.id]
