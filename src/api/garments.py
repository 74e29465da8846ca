"""
Garment Endpoints

POST   /api/subir-prenda  - Upload, clean and classify a garment image
GET    /api/prendas       - List a user's garments (newest first)
DELETE /api/prendas/{id}  - Delete a garment and its cleaned image
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from src.api.dependencies import get_upload_service, get_wardrobe_service
from src.core.logging import get_logger
from src.engines.wardrobe.schemas import (
    GarmentDTO,
    MessageResponse,
)
from src.engines.wardrobe.services import GarmentUploadService, WardrobeService

logger = get_logger(__name__)
router = APIRouter()


@router.post(
    "/subir-prenda",
    response_model=None,
    responses={200: {"description": "OutfitUploadResponse or GarmentUploadResponse"}}
)
async def upload_garment(
    imagen: Optional[UploadFile] = File(None),
    usuario_id: Optional[str] = Form(None),
    genero: Optional[str] = Form(None),
    tipo: Optional[str] = Form(None),
    imagen_url: Optional[str] = Form(None),
    service: GarmentUploadService = Depends(get_upload_service)
):
    """
    Upload a garment photo (file or URL).

    Flow:
    1. Store the uploaded file (if any) and resolve its public URL
    2. Remove the background and store the cleaned PNG
    3. Classify the cleaned image with the vision model
    4. Save one row, or one row per garment when an outfit is detected
    """
    logger.info(
        "upload_request_received",
        usuario_id=usuario_id,
        has_file=imagen is not None,
        has_url=bool(imagen_url)
    )
    return await service.upload(
        usuario_id=usuario_id,
        genero=genero,
        tipo=tipo,
        imagen_url=imagen_url,
        imagen=imagen
    )


@router.get("/prendas", response_model=List[GarmentDTO])
async def list_garments(
    usuario_id: Optional[str] = Query(None),
    tipo: Optional[str] = Query(None, description='Garment type; "Todos" disables the filter'),
    service: WardrobeService = Depends(get_wardrobe_service)
):
    return await service.list_garments(usuario_id, tipo)


@router.delete("/prendas/{garment_id}", response_model=MessageResponse)
async def delete_garment(
    garment_id: str,
    service: WardrobeService = Depends(get_wardrobe_service)
):
    return await service.delete_garment(garment_id)
