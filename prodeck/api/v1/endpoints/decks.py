"""
Deck API endpoints: plan, stream generation, edit, retry, import and export.
"""
import io
import json
import mimetypes
from contextlib import aclosing
from typing import AsyncIterator, List, Optional

import structlog
from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.responses import StreamingResponse

from prodeck.api.v1.dependencies import get_image_service, get_planner, get_registry
from prodeck.core.config import settings
from prodeck.core.errors import ErrorResponse
from prodeck.core.exceptions import (
    DeckBusyError,
    DeckNotFoundError,
    FileTooLargeError,
    ProDeckException,
    ValidationError,
)
from prodeck.core.logging import bind_deck_context
from prodeck.domain.interfaces.generation import Planner
from prodeck.domain.schemas.deck import (
    Deck,
    DeckRead,
    EditSlideRequest,
    ImportRead,
    ReferenceAsset,
)
from prodeck.services.ai.base import ImageModel
from prodeck.services.ai.image_service import ImageService
from prodeck.services.deck.orchestrator import DeckOrchestrator
from prodeck.services.deck.registry import DeckSession, DeckSessionRegistry
from prodeck.services.export.pptx_writer import export_filename

logger = structlog.get_logger(__name__)
router = APIRouter()

PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"


async def read_upload(upload: UploadFile, field: str) -> ReferenceAsset:
    """Read an upload into memory, enforcing the size limit."""
    filename = upload.filename or "upload"
    data = await upload.read()
    if len(data) > settings.max_upload_size_bytes:
        raise FileTooLargeError(filename, settings.MAX_UPLOAD_SIZE_MB, field=field)

    mime_type = upload.content_type or mimetypes.guess_type(filename)[0]
    return ReferenceAsset(
        filename=filename,
        mime_type=mime_type or "application/octet-stream",
        data=data,
    )


def select_backend(image_service: ImageService, image_model: Optional[ImageModel]) -> ImageService:
    model = image_model or ImageModel(settings.DEFAULT_IMAGE_MODEL)
    if model not in image_service.available_models:
        raise ValidationError(f"Image backend '{model.value}' is not configured", field="image_model")
    return image_service.with_model(model)


def current_deck(session: DeckSession) -> Deck:
    deck = session.orchestrator.deck
    if deck is None:
        raise DeckNotFoundError(session.id)
    bind_deck_context(session_id=session.id, deck_id=deck.id)
    return deck


def use_image_model(
    session: DeckSession,
    image_service: ImageService,
    image_model: Optional[ImageModel],
) -> None:
    """Switch the session to the backend picked for this call, if any."""
    if image_model is None:
        return
    backend = select_backend(image_service, image_model)
    session.switch_image_model(backend.model, backend)


def sse_event(payload: str, event: Optional[str] = None) -> str:
    prefix = f"event: {event}\n" if event else ""
    return f"{prefix}data: {payload}\n\n"


@router.post("", response_model=DeckRead, status_code=status.HTTP_201_CREATED)
async def create_deck(
    brief: str = Form(default=""),
    target_count: int = Form(default=settings.DEFAULT_SLIDE_COUNT),
    image_model: Optional[ImageModel] = Form(default=None),
    style_images: Optional[List[UploadFile]] = File(default=None),
    content_files: Optional[List[UploadFile]] = File(default=None),
    planner: Planner = Depends(get_planner),
    image_service: ImageService = Depends(get_image_service),
    registry: DeckSessionRegistry = Depends(get_registry),
) -> DeckRead:
    """
    Plan a new deck from a brief, style references and optional documents.

    The planned slides start out pending; call the generate endpoint to
    render them.
    """
    style_assets = [await read_upload(f, "style_images") for f in style_images or []]
    content_assets = [await read_upload(f, "content_files") for f in content_files or []]
    backend = select_backend(image_service, image_model)

    orchestrator = DeckOrchestrator(planner, backend)
    deck = await orchestrator.plan(brief, style_assets, content_assets, target_count)

    session = registry.create(orchestrator, backend.model, style_assets)
    logger.info("deck_created", session_id=session.id, deck_id=deck.id, slides=len(deck.slides))
    return DeckRead.from_deck(session.id, deck)


@router.post("/import", response_model=ImportRead)
async def import_deck(
    file: UploadFile = File(...),
    session_id: Optional[str] = Form(default=None),
    image_model: Optional[ImageModel] = Form(default=None),
    image_service: ImageService = Depends(get_image_service),
    registry: DeckSessionRegistry = Depends(get_registry),
) -> ImportRead:
    """
    Seed a deck from an existing PPTX.

    With `session_id` the package replaces that session's deck; otherwise a
    new session is created. Imported slides are ready to edit.
    """
    upload = await read_upload(file, "file")

    if session_id:
        session = registry.get(session_id)
        use_image_model(session, image_service, image_model)
        imported = await session.orchestrator.import_package(upload.data)
        deck = imported if not imported.is_empty else session.orchestrator.deck
        read = ImportRead.from_deck(session.id, deck)
        return read.model_copy(update={"imported": len(imported.slides)})

    backend = select_backend(image_service, image_model)
    orchestrator = DeckOrchestrator(None, backend)
    imported = await orchestrator.import_package(upload.data)
    if imported.is_empty:
        raise ValidationError("No slide images found in the package", field="file")

    session = registry.create(orchestrator, backend.model)
    read = ImportRead.from_deck(session.id, imported)
    return read.model_copy(update={"imported": len(imported.slides)})


@router.get("/{session_id}", response_model=DeckRead)
async def get_deck(
    session_id: str,
    registry: DeckSessionRegistry = Depends(get_registry),
) -> DeckRead:
    """Current snapshot of a deck."""
    session = registry.get(session_id)
    return DeckRead.from_deck(session.id, session.orchestrator.deck)


@router.post("/{session_id}/generate")
async def generate_deck(
    session_id: str,
    registry: DeckSessionRegistry = Depends(get_registry),
) -> StreamingResponse:
    """
    Render every pending or failed slide, streaming a snapshot per change.

    Each event carries the full deck. The stream ends with a `complete`
    event holding the batch outcome.
    """
    session = registry.get(session_id)
    deck = current_deck(session)
    orchestrator = session.orchestrator
    if orchestrator.busy_operation is not None:
        raise DeckBusyError(deck.id, orchestrator.busy_operation)

    async def stream() -> AsyncIterator[str]:
        try:
            # Closing the snapshots on disconnect fails the slide left in flight.
            async with aclosing(orchestrator.generate_all(deck, session.style_assets)) as snapshots:
                async for snapshot in snapshots:
                    yield sse_event(DeckRead.from_deck(session.id, snapshot).model_dump_json())

            report = orchestrator.last_report
            yield sse_event(
                json.dumps({
                    "session_id": session.id,
                    "succeeded": report.succeeded if report else [],
                    "failed": report.failed if report else [],
                    "cancelled": report.cancelled if report else False,
                }),
                event="complete",
            )
        except ProDeckException as e:
            logger.error("stream_generation_error", session_id=session.id, error=e.message)
            yield sse_event(json.dumps(ErrorResponse.from_exception(e).to_dict()), event="error")

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@router.post("/{session_id}/slides/{position}/edit", response_model=DeckRead)
async def edit_slide(
    session_id: str,
    position: int,
    request: EditSlideRequest,
    image_service: ImageService = Depends(get_image_service),
    registry: DeckSessionRegistry = Depends(get_registry),
) -> DeckRead:
    """
    Apply a natural-language edit to a finished slide.

    `image_model` in the body switches the session's backend before the
    edit runs, the same as picking another model in the builder.
    """
    session = registry.get(session_id)
    deck = current_deck(session)
    if request.image_model:
        use_image_model(session, image_service, ImageModel(request.image_model))
    deck = await session.orchestrator.edit_slide(deck, position, request.instruction)
    return DeckRead.from_deck(session.id, deck)


@router.post("/{session_id}/slides/{position}/retry", response_model=DeckRead)
async def retry_slide(
    session_id: str,
    position: int,
    image_model: Optional[ImageModel] = None,
    image_service: ImageService = Depends(get_image_service),
    registry: DeckSessionRegistry = Depends(get_registry),
) -> DeckRead:
    """Run one more generation attempt for a failed slide, optionally on another backend."""
    session = registry.get(session_id)
    deck = current_deck(session)
    use_image_model(session, image_service, image_model)
    deck = await session.orchestrator.retry_slide(deck, position, session.style_assets)
    return DeckRead.from_deck(session.id, deck)


@router.get("/{session_id}/export")
async def export_deck(
    session_id: str,
    registry: DeckSessionRegistry = Depends(get_registry),
) -> StreamingResponse:
    """Download the deck as a picture-only PPTX."""
    session = registry.get(session_id)
    data = session.orchestrator.export_package(current_deck(session))
    filename = export_filename()

    return StreamingResponse(
        io.BytesIO(data),
        media_type=PPTX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_deck(
    session_id: str,
    registry: DeckSessionRegistry = Depends(get_registry),
) -> Response:
    """Discard the deck; results still in flight are dropped."""
    await registry.delete(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
