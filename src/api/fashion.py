"""
Fashion Advice Endpoint

POST /api/fashion - Answer a styling question using the user's wardrobe
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_fashion_service
from src.engines.wardrobe.schemas import FashionRequest, FashionResponse
from src.engines.wardrobe.services import FashionAdvisorService

router = APIRouter()


@router.post("/fashion", response_model=FashionResponse)
async def fashion_advice(
    request: FashionRequest,
    service: FashionAdvisorService = Depends(get_fashion_service)
):
    return await service.advise(request.usuario_id, request.mensaje)
