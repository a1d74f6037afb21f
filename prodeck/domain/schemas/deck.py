"""
Schemas for decks, slides and the presentation package boundary.

Deck and Slide values are frozen: the orchestrator never mutates them in
place, every transition produces a new snapshot.
"""
import base64
from enum import Enum
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from prodeck.core.exceptions import SlideNotFoundError

TEXT_DOCUMENT_SUFFIXES = (".md", ".csv", ".txt")


class SlideState(str, Enum):
    """Lifecycle state of a single slide."""
    PENDING = "pending"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


class SlideImage(BaseModel):
    """Rendered raster image for a slide."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/png"

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class ReferenceAsset(BaseModel):
    """Style image or content document supplied for planning."""
    model_config = ConfigDict(frozen=True)

    filename: str
    mime_type: str = "application/octet-stream"
    data: bytes

    @property
    def is_text(self) -> bool:
        if self.mime_type.startswith("text/"):
            return True
        return PurePosixPath(self.filename).suffix.lower() in TEXT_DOCUMENT_SUFFIXES

    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


class SlideSpec(BaseModel):
    """One planned slide as returned by a planner."""
    model_config = ConfigDict(frozen=True)

    position: int = Field(..., ge=1)
    title: str
    visual_prompt: str


class Slide(BaseModel):
    """One positional unit of a deck."""
    model_config = ConfigDict(frozen=True)

    position: int = Field(..., ge=1)
    title: str
    visual_prompt: str = ""
    state: SlideState = SlideState.PENDING
    image: Optional[SlideImage] = None
    error: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return self.image is not None


class Deck(BaseModel):
    """Ordered, immutable snapshot of the slides under construction."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    revision: int = 0
    slides: Tuple[Slide, ...] = ()

    @classmethod
    def from_specs(cls, specs: List[SlideSpec]) -> "Deck":
        """New deck of pending slides, numbered in the order given."""
        slides = tuple(
            Slide(position=index, title=spec.title, visual_prompt=spec.visual_prompt)
            for index, spec in enumerate(specs, start=1)
        )
        return cls(slides=slides)

    @property
    def is_empty(self) -> bool:
        return not self.slides

    @property
    def positions(self) -> List[int]:
        return [slide.position for slide in self.slides]

    @property
    def states(self) -> List[SlideState]:
        return [slide.state for slide in self.slides]

    def get_slide(self, position: int) -> Slide:
        for slide in self.slides:
            if slide.position == position:
                return slide
        raise SlideNotFoundError(position)

    def exportable_images(self) -> List[SlideImage]:
        """Images in presentation order, skipping slides without one."""
        return [slide.image for slide in self.slides if slide.image is not None]

    def summary(self) -> Dict[str, int]:
        counts = {state.value: 0 for state in SlideState}
        for slide in self.slides:
            counts[slide.state.value] += 1
        counts["total"] = len(self.slides)
        return counts


class PackageEntry(BaseModel):
    """One slide image recovered from, or destined for, a package."""
    model_config = ConfigDict(frozen=True)

    position: int
    data: bytes
    mime_type: str

    def to_image(self) -> SlideImage:
        return SlideImage(data=self.data, mime_type=self.mime_type)


class SlideRead(BaseModel):
    """Schema for slide response."""
    position: int
    title: str
    visual_prompt: str
    state: SlideState
    error: Optional[str] = None
    image_url: Optional[str] = None

    @classmethod
    def from_slide(cls, slide: Slide) -> "SlideRead":
        return cls(
            position=slide.position,
            title=slide.title,
            visual_prompt=slide.visual_prompt,
            state=slide.state,
            error=slide.error,
            image_url=slide.image.data_url if slide.image else None,
        )


class DeckRead(BaseModel):
    """Schema for deck response."""
    session_id: str
    deck_id: Optional[str] = None
    revision: int = 0
    slides: List[SlideRead] = Field(default_factory=list)
    summary: Dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_deck(cls, session_id: str, deck: Optional[Deck]) -> "DeckRead":
        if deck is None:
            return cls(session_id=session_id)
        return cls(
            session_id=session_id,
            deck_id=deck.id,
            revision=deck.revision,
            slides=[SlideRead.from_slide(slide) for slide in deck.slides],
            summary=deck.summary(),
        )


class ImportRead(DeckRead):
    """Schema for package import response."""
    imported: int = 0


class EditSlideRequest(BaseModel):
    """Schema for a slide edit request."""
    instruction: str = Field(..., min_length=1, max_length=4000)
    image_model: Optional[str] = Field(
        default=None,
        pattern="^(gemini|openai)$",
        description="Backend for this edit and later calls; keeps the session's backend when omitted",
    )
