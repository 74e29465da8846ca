"""
FastAPI Dependencies for the Wardrobe Services

Provider clients live on ``app.state`` (built once in the lifespan handler);
services are assembled per request from them. Tests swap any piece through
``app.dependency_overrides``.
"""

from fastapi import Depends, Request

from src.core.config import settings
from src.core.database import async_session_maker
from src.core.storage import IStorage
from src.engines.wardrobe.providers import BackgroundRemovalClient, CompletionClient
from src.engines.wardrobe.repositories import GarmentRepository
from src.engines.wardrobe.services import (
    FashionAdvisorService,
    GarmentUploadService,
    WardrobeService,
)


def get_storage(request: Request) -> IStorage:
    return request.app.state.storage


def get_background_removal(request: Request) -> BackgroundRemovalClient:
    return request.app.state.background_removal


def get_completion(request: Request) -> CompletionClient:
    return request.app.state.completion


def get_garment_repository() -> GarmentRepository:
    return GarmentRepository(async_session_maker)


def get_upload_service(
    storage: IStorage = Depends(get_storage),
    background_removal: BackgroundRemovalClient = Depends(get_background_removal),
    completion: CompletionClient = Depends(get_completion),
    repository: GarmentRepository = Depends(get_garment_repository),
) -> GarmentUploadService:
    return GarmentUploadService(
        storage=storage,
        background_removal=background_removal,
        completion=completion,
        repository=repository,
        vision_temperature=settings.VISION_TEMPERATURE,
    )


def get_wardrobe_service(
    repository: GarmentRepository = Depends(get_garment_repository),
    storage: IStorage = Depends(get_storage),
) -> WardrobeService:
    return WardrobeService(repository=repository, storage=storage)


def get_fashion_service(
    repository: GarmentRepository = Depends(get_garment_repository),
    completion: CompletionClient = Depends(get_completion),
) -> FashionAdvisorService:
    return FashionAdvisorService(
        repository=repository,
        completion=completion,
        temperature=settings.ADVICE_TEMPERATURE,
    )
