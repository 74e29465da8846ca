from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class GarmentDTO(BaseModel):
    """A garment row as returned by the API."""
    model_config = {"from_attributes": True}

    id: str
    usuario_id: str
    tipo: str
    genero: str
    imagen_url: str
    descripcion: str
    metadata_ia: Optional[Any] = None
    created_at: datetime


class OutfitUploadResponse(BaseModel):
    """Upload response when several garments were detected and stored separately."""
    mensaje: str
    prendasDetectadas: List[Dict[str, Any]]


class GarmentUploadResponse(BaseModel):
    """Upload response when zero or one garment was detected."""
    mensaje: str
    descripcion: str
    prendasDetectadas: List[Dict[str, Any]]
    imagen_url: str


class FashionRequest(BaseModel):
    # Optional so that missing values surface as the handler's own 400 message
    usuario_id: Optional[str] = Field(None)
    mensaje: Optional[str] = Field(None)


class FashionResponse(BaseModel):
    respuesta: str


class MessageResponse(BaseModel):
    mensaje: str
