"""
API Router Module - Wardrobe Backend

All endpoints are prefixed with /api/
"""

from fastapi import APIRouter

from src.api.garments import router as garments_router
from src.api.fashion import router as fashion_router
from src.api.metrics import router as metrics_router

api_router = APIRouter(prefix="/api")

api_router.include_router(garments_router, tags=["garments"])
api_router.include_router(fashion_router, tags=["fashion"])
api_router.include_router(metrics_router, tags=["metrics"])
