"""
In-memory registry of deck sessions.

A session bundles one orchestrator with the style references its deck was
planned from, so generation and retries reuse them without re-uploading.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from prodeck.core.exceptions import DeckNotFoundError
from prodeck.core.logging import get_logger
from prodeck.domain.interfaces.generation import ImageGenerator
from prodeck.domain.schemas.deck import ReferenceAsset
from prodeck.services.ai.base import ImageModel
from prodeck.services.deck.orchestrator import DeckOrchestrator

logger = get_logger(__name__)


@dataclass
class DeckSession:
    orchestrator: DeckOrchestrator
    image_model: ImageModel
    style_assets: Tuple[ReferenceAsset, ...] = ()
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def switch_image_model(self, image_model: ImageModel, image_generator: ImageGenerator) -> None:
        """Route later generate/edit calls of this session to another backend."""
        if image_model is self.image_model:
            return
        logger.info(
            "deck_session_image_model_switched",
            session_id=self.id,
            previous=self.image_model.value,
            image_model=image_model.value,
        )
        self.image_model = image_model
        self.orchestrator.image_generator = image_generator


class DeckSessionRegistry:
    """Keeps sessions by id for the lifetime of the process."""

    def __init__(self):
        self._sessions: Dict[str, DeckSession] = {}

    def create(
        self,
        orchestrator: DeckOrchestrator,
        image_model: ImageModel,
        style_assets: Optional[List[ReferenceAsset]] = None,
    ) -> DeckSession:
        session = DeckSession(
            orchestrator=orchestrator,
            image_model=image_model,
            style_assets=tuple(style_assets or ()),
        )
        self._sessions[session.id] = session
        logger.info("deck_session_created", session_id=session.id, image_model=image_model.value)
        return session

    def get(self, session_id: str) -> DeckSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise DeckNotFoundError(session_id) from None

    async def delete(self, session_id: str) -> None:
        session = self.get(session_id)
        await session.orchestrator.discard()
        del self._sessions[session_id]
        logger.info("deck_session_deleted", session_id=session_id)

    def __len__(self) -> int:
        return len(self._sessions)
