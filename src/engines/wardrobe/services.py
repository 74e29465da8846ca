"""
Wardrobe Services

GarmentUploadService runs the upload pipeline:

    intake -> storage upload -> background removal -> vision
    classification -> one or many garment rows

Every step depends on the previous one's output, so steps run strictly in
sequence; the only fan-out is the per-garment insert of an outfit. A failing
step aborts the request without rolling back completed steps.
"""

import asyncio
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from src.core.exceptions import MissingImageError, MissingParameterError
from src.core.logging import get_logger, with_logging
from src.core.metrics import record_detection, record_rows_inserted
from src.core.storage import IStorage, safe_key_part
from src.engines.wardrobe.models import Prenda, DEFAULT_GENERO, DEFAULT_TIPO
from src.engines.wardrobe.parsing import extract_detected_garments
from src.engines.wardrobe.providers import BackgroundRemovalClient, CompletionClient
from src.engines.wardrobe.repositories import GarmentRepository
from src.engines.wardrobe.schemas import (
    FashionResponse,
    GarmentUploadResponse,
    MessageResponse,
    OutfitUploadResponse,
)

logger = get_logger(__name__)

VISION_PROMPT = 'Devuelve JSON {"prendas":[{"nombre":"","color":"","tipo":""}]} según la imagen.'
NO_GARMENT_DESCRIPTION = "No se detectó prenda clara."
OUTFIT_MESSAGE = "✅ Outfit detectado, prendas guardadas individualmente."
GARMENT_MESSAGE = "✅ Prenda analizada correctamente."
DELETED_MESSAGE = "🗑️ Prenda eliminada correctamente"

ADVISOR_PERSONA = "Eres un asesor de moda profesional."
NO_ANSWER = "Sin respuesta"


class UploadedFile(Protocol):
    """What the pipeline needs from a multipart upload (fastapi.UploadFile fits)."""
    filename: Optional[str]
    content_type: Optional[str]

    async def read(self) -> bytes: ...

    async def close(self) -> None: ...


def describe_garment(garment: Dict[str, Any]) -> str:
    """Human-readable summary: ``"{nombre} ({color}) - {tipo}"``."""
    nombre = garment.get("nombre") or "Prenda"
    color = garment.get("color") or "desconocido"
    tipo = garment.get("tipo") or "sin tipo"
    return f"{nombre} ({color}) - {tipo}"


def _millis() -> int:
    return int(time.time() * 1000)


def _extension(filename: Optional[str]) -> str:
    suffix = Path(filename or "").suffix
    return safe_key_part(suffix[1:]) if suffix else "bin"


class GarmentUploadService:
    """Orchestrates the /subir-prenda pipeline."""

    def __init__(
        self,
        storage: IStorage,
        background_removal: BackgroundRemovalClient,
        completion: CompletionClient,
        repository: GarmentRepository,
        vision_temperature: float = 0.0
    ):
        self.storage = storage
        self.background_removal = background_removal
        self.completion = completion
        self.repository = repository
        self.vision_temperature = vision_temperature

    async def upload(
        self,
        usuario_id: Optional[str],
        genero: Optional[str] = None,
        tipo: Optional[str] = None,
        imagen_url: Optional[str] = None,
        imagen: Optional[UploadedFile] = None
    ):
        if not usuario_id:
            raise MissingParameterError("Falta usuario_id")

        genero = genero or DEFAULT_GENERO
        tipo = tipo or DEFAULT_TIPO

        working_url = imagen_url or None
        if imagen is not None:
            working_url = await self._store_original(usuario_id, imagen)

        if not working_url:
            raise MissingImageError()

        logger.info("upload_pipeline_started", usuario_id=usuario_id, image_url=working_url)

        clean_image_url = await self._remove_background(usuario_id, working_url)
        garments = await self._classify(clean_image_url)

        if len(garments) > 1:
            await self._persist_outfit(usuario_id, genero, clean_image_url, garments)
            return OutfitUploadResponse(
                mensaje=OUTFIT_MESSAGE,
                prendasDetectadas=garments
            )

        descripcion = describe_garment(garments[0]) if garments else NO_GARMENT_DESCRIPTION
        await self.repository.insert(
            Prenda(
                usuario_id=usuario_id,
                tipo=tipo,
                genero=genero,
                imagen_url=clean_image_url,
                descripcion=descripcion,
                metadata_ia=garments,
            )
        )
        record_rows_inserted("single", 1)

        return GarmentUploadResponse(
            mensaje=GARMENT_MESSAGE,
            descripcion=descripcion,
            prendasDetectadas=garments,
            imagen_url=clean_image_url
        )

    @with_logging("original_upload")
    async def _store_original(self, usuario_id: str, imagen: UploadedFile) -> str:
        """Upload the caller's file and return its public URL.

        The spooled temporary file behind the upload is released whether or
        not the storage upload succeeds.
        """
        key = f"{safe_key_part(usuario_id)}_{_millis()}.{_extension(imagen.filename)}"
        try:
            data = await imagen.read()
            await self.storage.upload(
                data,
                key,
                content_type=imagen.content_type or "application/octet-stream"
            )
        finally:
            await imagen.close()

        return self.storage.get_public_url(key)

    @with_logging("background_removal")
    async def _remove_background(self, usuario_id: str, image_url: str) -> str:
        clean_bytes = await self.background_removal.remove_background(image_url)

        clean_key = f"{safe_key_part(usuario_id)}_{_millis()}_clean.png"
        await self.storage.upload(clean_bytes, clean_key, content_type="image/png")
        clean_image_url = self.storage.get_public_url(clean_key)

        logger.info("clean_image_uploaded", url=clean_image_url)
        return clean_image_url

    @with_logging("classification")
    async def _classify(self, clean_image_url: str) -> List[Dict[str, Any]]:
        raw = await self.completion.describe_image(
            VISION_PROMPT,
            clean_image_url,
            temperature=self.vision_temperature
        )
        detection = extract_detected_garments(raw)
        record_detection(len(detection.garments))
        logger.info("garments_detected", count=len(detection.garments), parsed=detection.ok)
        return detection.garments

    @with_logging("outfit_persistence")
    async def _persist_outfit(
        self,
        usuario_id: str,
        genero: str,
        clean_image_url: str,
        garments: List[Dict[str, Any]]
    ):
        # Concurrent and not atomic: a failure fails the request, but rows
        # already committed by sibling inserts stay.
        await asyncio.gather(*(
            self.repository.insert(
                Prenda(
                    usuario_id=usuario_id,
                    tipo=DEFAULT_TIPO,
                    genero=genero,
                    imagen_url=clean_image_url,
                    descripcion=describe_garment(garment),
                    metadata_ia=garment,
                )
            )
            for garment in garments
        ))
        record_rows_inserted("outfit", len(garments))


class WardrobeService:
    """Query and delete handlers."""

    def __init__(self, repository: GarmentRepository, storage: IStorage):
        self.repository = repository
        self.storage = storage

    async def list_garments(self, usuario_id: Optional[str], tipo: Optional[str] = None) -> List[Prenda]:
        if not usuario_id:
            raise MissingParameterError("Falta usuario_id")
        return await self.repository.list_by_user(usuario_id, tipo)

    async def delete_garment(self, garment_id: str) -> MessageResponse:
        """Delete a garment row and, best effort, its cleaned image.

        A storage failure is logged and ignored so it never blocks the row
        deletion. Unknown ids are not an error.
        """
        imagen_url = await self.repository.get_image_url(garment_id)

        if imagen_url:
            key = IStorage.key_from_url(imagen_url)
            try:
                await self.storage.delete(key)
            except Exception as e:
                logger.warning(
                    "storage_delete_failed",
                    garment_id=garment_id,
                    key=key,
                    error=str(e),
                    error_type=type(e).__name__
                )

        removed = await self.repository.delete(garment_id)
        logger.info("garment_deleted", garment_id=garment_id, rows=removed)
        return MessageResponse(mensaje=DELETED_MESSAGE)


class FashionAdvisorService:
    """Answers styling questions using the user's wardrobe as context."""

    def __init__(
        self,
        repository: GarmentRepository,
        completion: CompletionClient,
        temperature: float = 0.7
    ):
        self.repository = repository
        self.completion = completion
        self.temperature = temperature

    @staticmethod
    def build_context(garments: List[Dict[str, Any]]) -> str:
        return "\n".join(
            f"• ({g.get('tipo') or 'sin tipo'}) {g.get('descripcion')}"
            for g in garments
        )

    async def advise(self, usuario_id: Optional[str], mensaje: Optional[str]) -> FashionResponse:
        if not usuario_id or not mensaje:
            raise MissingParameterError("Faltan datos.")

        garments = await self.repository.list_summaries(usuario_id)
        contexto = self.build_context(garments)

        messages = [
            {"role": "system", "content": ADVISOR_PERSONA},
            {
                "role": "user",
                "content": f"Estas son las prendas del usuario:\n{contexto}\n\nPregunta: {mensaje}",
            },
        ]
        answer = await self.completion.complete(messages, temperature=self.temperature)

        logger.info("fashion_advice_generated", usuario_id=usuario_id, context_items=len(garments))
        return FashionResponse(respuesta=answer or NO_ANSWER)
