"""
Garment record model.

One row describes one classified clothing item and the public URL of its
background-removed image. Rows are never updated, only inserted and deleted.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlmodel import SQLModel, Field, Column, JSON


DEFAULT_TIPO = "prenda"
DEFAULT_GENERO = "unisex"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Prenda(SQLModel, table=True):
    """A persisted garment."""
    __tablename__ = "prendas"

    id: str = Field(
        default_factory=lambda: uuid.uuid4().hex,
        primary_key=True
    )

    # Caller-supplied owner, not checked against any users table
    usuario_id: str = Field(index=True)

    tipo: str = Field(default=DEFAULT_TIPO, index=True)
    genero: str = Field(default=DEFAULT_GENERO)

    # Always the background-removed asset
    imagen_url: str

    descripcion: str = Field(default="")

    # One detection object (outfit rows) or the full detection list
    metadata_ia: Optional[Any] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utc_now, index=True)
