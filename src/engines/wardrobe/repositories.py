"""
Garment Repository

Every call opens its own session from the factory, so several inserts can
run concurrently within one request.
"""

from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import get_logger
from src.engines.wardrobe.models import Prenda

logger = get_logger(__name__)

# Sentinel sent by clients meaning "no type filter"
ALL_TYPES = "Todos"


class GarmentRepository:
    """Repository for garment rows."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def insert(self, prenda: Prenda) -> Prenda:
        """Insert a garment row and return it with its assigned id."""
        async with self.session_factory() as session:
            session.add(prenda)
            await session.commit()
            await session.refresh(prenda)
        logger.info("garment_inserted", garment_id=prenda.id, usuario_id=prenda.usuario_id)
        return prenda

    async def list_by_user(self, usuario_id: str, tipo: Optional[str] = None) -> List[Prenda]:
        """Get a user's garments, newest first, optionally filtered by type."""
        query = (
            select(Prenda)
            .where(Prenda.usuario_id == usuario_id)
            .order_by(Prenda.created_at.desc())
        )
        if tipo and tipo != ALL_TYPES:
            query = query.where(Prenda.tipo == tipo)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_summaries(self, usuario_id: str) -> List[Dict[str, Any]]:
        """Get the type, description and gender of every garment a user owns."""
        query = (
            select(Prenda.tipo, Prenda.descripcion, Prenda.genero)
            .where(Prenda.usuario_id == usuario_id)
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [dict(row._mapping) for row in result.all()]

    async def get_image_url(self, garment_id: str) -> Optional[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Prenda.imagen_url).where(Prenda.id == garment_id)
            )
            return result.scalar_one_or_none()

    async def delete(self, garment_id: str) -> int:
        """Delete a garment row. Returns the number of rows removed (0 or 1)."""
        async with self.session_factory() as session:
            result = await session.execute(
                delete(Prenda).where(Prenda.id == garment_id)
            )
            await session.commit()
            return result.rowcount or 0
