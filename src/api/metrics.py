"""
Metrics Endpoint

GET /api/metrics - Prometheus metrics endpoint
"""

from fastapi import APIRouter, Response

from src.core.metrics import get_metrics, get_metrics_content_type

router = APIRouter()


@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.

    Exposes:
    - http_requests_total / http_request_duration_seconds
    - provider_calls_total / provider_latency_seconds
    - garments_detected_per_upload
    - garment_rows_inserted_total
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
