"""State transitions and snapshot publication for decks."""

import asyncio
import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Union

from prodeck.core.exceptions import InvalidSlideState
from prodeck.core.logging import get_logger
from prodeck.domain.schemas.deck import Deck, Slide, SlideImage, SlideState

logger = get_logger(__name__)

DeckListener = Callable[[Deck], Union[None, Awaitable[None]]]


class SlideEvent(Enum):
    """Events that move a slide through its lifecycle."""
    START = "start"
    SUCCEED = "succeed"
    FAIL = "fail"


ALLOWED_SOURCES: Dict[SlideEvent, FrozenSet[SlideState]] = {
    # pending: first generation; done: edit; failed: explicit retry
    SlideEvent.START: frozenset({SlideState.PENDING, SlideState.DONE, SlideState.FAILED}),
    SlideEvent.SUCCEED: frozenset({SlideState.GENERATING}),
    SlideEvent.FAIL: frozenset({SlideState.GENERATING}),
}


@dataclass(frozen=True)
class StateChange:
    """Represents a single slide transition."""
    deck_id: str
    revision: int
    position: int
    event: SlideEvent
    old_state: SlideState
    new_state: SlideState
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def can_transition(state: SlideState, event: SlideEvent) -> bool:
    return state in ALLOWED_SOURCES[event]


def next_slide(
    slide: Slide,
    event: SlideEvent,
    image: Optional[SlideImage] = None,
    error: Optional[str] = None,
    action: Optional[str] = None,
) -> Slide:
    """
    Apply one event to a slide.

    A failure keeps whatever image the slide already had, so a failed edit
    leaves the last good image in place.
    """
    if not can_transition(slide.state, event):
        raise InvalidSlideState(slide.position, slide.state.value, action or event.value)

    if event is SlideEvent.START:
        return slide.model_copy(update={"state": SlideState.GENERATING, "error": None})

    if event is SlideEvent.SUCCEED:
        if image is None:
            raise ValueError("A successful transition needs an image")
        return slide.model_copy(update={"state": SlideState.DONE, "image": image, "error": None})

    return slide.model_copy(update={"state": SlideState.FAILED, "error": error or "Unknown error"})


def apply_transition(
    deck: Deck,
    position: int,
    event: SlideEvent,
    image: Optional[SlideImage] = None,
    error: Optional[str] = None,
    action: Optional[str] = None,
) -> Deck:
    """Return a new deck with the slide at `position` transitioned."""
    current = deck.get_slide(position)
    updated = next_slide(current, event, image=image, error=error, action=action)
    slides = tuple(updated if slide.position == position else slide for slide in deck.slides)
    return deck.model_copy(update={"slides": slides, "revision": deck.revision + 1})


def describe_change(before: Deck, after: Deck, position: int, event: SlideEvent) -> StateChange:
    return StateChange(
        deck_id=after.id,
        revision=after.revision,
        position=position,
        event=event,
        old_state=before.get_slide(position).state,
        new_state=after.get_slide(position).state,
    )


class DeckPublisher:
    """Delivers deck snapshots to subscribers in emission order."""

    def __init__(self):
        self._listeners: List[DeckListener] = []

    def subscribe(self, callback: DeckListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it again."""
        self._listeners.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: DeckListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def publish(self, deck: Optional[Deck]) -> None:
        for callback in list(self._listeners):
            try:
                result: Any = callback(deck)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("deck_listener_error", error=str(e), listener=repr(callback))
