"""
Deck orchestration: plan, sequential generation, edits, import and export.

The orchestrator owns exactly one current deck at a time. Every change goes
through `apply_transition`, is stored as the new current snapshot and is
published to subscribers before the next network call starts.
"""
import asyncio
from collections import deque
from dataclasses import dataclass, replace
from typing import AsyncIterator, Deque, List, Optional, Sequence, Tuple

from prodeck.core.config import get_settings
from prodeck.core.exceptions import (
    ConfigurationError,
    DeckBusyError,
    InvalidSlideState,
    PlanningFailed,
    ProDeckException,
    SlideEditFailed,
    SlideGenerationFailed,
    StaleDeckError,
    ValidationError,
)
from prodeck.core.logging import get_logger, log_error_details, log_slide_details
from prodeck.domain.interfaces.generation import ImageGenerator, Planner
from prodeck.domain.schemas.deck import (
    Deck,
    ReferenceAsset,
    Slide,
    SlideImage,
    SlideState,
)
from prodeck.services.deck.state import (
    DeckListener,
    DeckPublisher,
    SlideEvent,
    StateChange,
    apply_transition,
    describe_change,
)
from prodeck.services.export.pptx_reader import read_package
from prodeck.services.export.pptx_writer import PackageWriter

logger = get_logger(__name__)
settings = get_settings()

IMPORTED_TITLE = "Imported Slide {ordinal}"
IMPORTED_PROMPT = "Imported slide content"
CANCELLED_MESSAGE = "Generation cancelled"
GENERATABLE_STATES = (SlideState.PENDING, SlideState.FAILED)


@dataclass(frozen=True)
class SlideOutcome:
    """Result of one generation attempt."""
    position: int
    succeeded: bool
    failure: Optional[ProDeckException] = None

    @property
    def error(self) -> Optional[str]:
        return self.failure.message if self.failure else None


@dataclass(frozen=True)
class BatchReport:
    """Accumulated outcomes of a `generate_all` run."""
    deck_id: str
    outcomes: Tuple[SlideOutcome, ...] = ()
    cancelled: bool = False

    def with_outcome(self, outcome: SlideOutcome) -> "BatchReport":
        return replace(self, outcomes=self.outcomes + (outcome,))

    @property
    def succeeded(self) -> List[int]:
        return [o.position for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> List[int]:
        return [o.position for o in self.outcomes if not o.succeeded]


def describe_error(error: BaseException) -> str:
    if isinstance(error, ProDeckException):
        return error.message
    return str(error) or type(error).__name__


@dataclass
class _Attempt:
    outcome: SlideOutcome
    snapshot: Deck


@dataclass(eq=False)
class _Claim:
    deck_id: str
    operation: str


class DeckOrchestrator:
    """
    Drives one deck through planning, generation and edits.

    Args:
        planner: Planner capability; may be None for imported decks
        image_generator: Image capability (generate/edit)
        writer: Package writer used by `export_package`
        min_slides / max_slides: Accepted range for `target_count`
        planner_timeout: Upper bound for the single planning call
    """

    def __init__(
        self,
        planner: Optional[Planner],
        image_generator: ImageGenerator,
        writer: Optional[PackageWriter] = None,
        min_slides: Optional[int] = None,
        max_slides: Optional[int] = None,
        planner_timeout: Optional[float] = None,
        history_size: int = 500,
    ):
        self.planner = planner
        self.image_generator = image_generator
        self.writer = writer or PackageWriter()
        self.min_slides = min_slides if min_slides is not None else settings.MIN_SLIDE_COUNT
        self.max_slides = max_slides if max_slides is not None else settings.MAX_SLIDE_COUNT
        self.planner_timeout = (
            planner_timeout if planner_timeout is not None else settings.PLANNER_TIMEOUT_SECONDS
        )
        self.publisher = DeckPublisher()
        self.last_report: Optional[BatchReport] = None
        self._deck: Optional[Deck] = None
        self._history: Deque[StateChange] = deque(maxlen=history_size)
        self._busy: Optional[_Claim] = None

    @property
    def deck(self) -> Optional[Deck]:
        """Current snapshot, or None before planning/import and after discard."""
        return self._deck

    @property
    def history(self) -> List[StateChange]:
        return list(self._history)

    @property
    def busy_operation(self) -> Optional[str]:
        """Name of the batch or retry running against the current deck, if any."""
        if self._busy is not None and self._is_current(self._busy.deck_id):
            return self._busy.operation
        return None

    def subscribe(self, callback: DeckListener):
        return self.publisher.subscribe(callback)

    def unsubscribe(self, callback: DeckListener) -> None:
        self.publisher.unsubscribe(callback)

    # Planning

    async def plan(
        self,
        brief: str,
        style_assets: Sequence[ReferenceAsset],
        content_assets: Sequence[ReferenceAsset] = (),
        target_count: Optional[int] = None,
    ) -> Deck:
        """
        Plan a fresh deck of pending slides.

        The planner is called exactly once. Its slide list is taken as is,
        even when it does not match `target_count`. On failure the current
        deck stays in place.

        Raises:
            ValidationError: Missing brief/style references or count out of range
            PlanningFailed: Planner error or timeout
        """
        target_count = settings.DEFAULT_SLIDE_COUNT if target_count is None else target_count
        self._validate_plan_request(brief, style_assets, target_count)
        if self.planner is None:
            raise ConfigurationError("No planner is configured for this deck")

        logger.info(
            "deck_planning_started",
            target_count=target_count,
            style_assets=len(style_assets),
            content_assets=len(content_assets),
        )
        try:
            specs = await asyncio.wait_for(
                self.planner.plan(
                    brief.strip(),
                    tuple(style_assets),
                    tuple(content_assets),
                    target_count,
                ),
                timeout=self.planner_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("deck_planning_timeout", timeout_seconds=self.planner_timeout)
            raise PlanningFailed(f"Planner timed out after {self.planner_timeout:g}s") from e
        except Exception as e:
            logger.error("deck_planning_failed", **log_error_details(e))
            raise PlanningFailed(describe_error(e)) from e

        deck = Deck.from_specs(list(specs))
        if len(deck.slides) != target_count:
            logger.warning(
                "planner_count_mismatch",
                requested=target_count,
                returned=len(deck.slides),
            )

        await self._replace(deck)
        logger.info("deck_planned", deck_id=deck.id, slides=len(deck.slides))
        return deck

    def _validate_plan_request(
        self,
        brief: str,
        style_assets: Sequence[ReferenceAsset],
        target_count: int,
    ) -> None:
        if not brief or not brief.strip():
            raise ValidationError("Please provide context for the presentation", field="brief")
        if not style_assets:
            raise ValidationError("Please provide at least one reference image", field="style_assets")
        if isinstance(target_count, bool) or not isinstance(target_count, int):
            raise ValidationError("Slide count must be an integer", field="target_count")
        if not self.min_slides <= target_count <= self.max_slides:
            raise ValidationError(
                f"Slide count must be between {self.min_slides} and {self.max_slides}",
                field="target_count",
            )

    # Generation

    async def generate_all(
        self,
        deck: Deck,
        style_assets: Sequence[ReferenceAsset],
    ) -> AsyncIterator[Deck]:
        """
        Generate slide images one at a time, in position order.

        Yields a snapshot when a slide starts generating and another when it
        finishes or fails. A failed slide never stops the batch. Slides that
        already have a finished image are left alone. If iteration stops
        early, the slide in flight is marked failed.

        Raises:
            StaleDeckError: `deck` is not the current deck
            DeckBusyError: A batch or retry is already running on this deck
        """
        self._require_current(deck)
        claim = self._claim(deck, "generate")
        style_assets = tuple(style_assets)
        report = BatchReport(deck_id=deck.id)
        in_flight: Optional[int] = None
        completed = False
        logger.info("deck_generation_started", deck_id=deck.id, slides=len(deck.slides))

        try:
            for position in deck.positions:
                if not self._is_current(deck.id):
                    report = replace(report, cancelled=True)
                    break

                slide = self._deck.get_slide(position)
                if slide.state not in GENERATABLE_STATES:
                    logger.debug("slide_generation_skipped", position=position, state=slide.state.value)
                    continue

                in_flight = position
                yield await self._transition(position, SlideEvent.START, action="generate")

                attempt = await self._attempt_generate(deck.id, slide, style_assets)
                in_flight = None
                if attempt is None:
                    report = replace(report, cancelled=True)
                    break

                report = report.with_outcome(attempt.outcome)
                yield attempt.snapshot
            completed = True
        finally:
            # A consumer that stops iterating early leaves a slide generating.
            if not completed:
                report = replace(report, cancelled=True)
                logger.info("deck_generation_interrupted", deck_id=deck.id, position=in_flight)
            if in_flight is not None:
                await self._fail_if_current(deck.id, in_flight, CANCELLED_MESSAGE)
            self._release(claim)
            if self._is_current(deck.id) or not self._reports_current_deck():
                self.last_report = report
            logger.info(
                "deck_generation_finished",
                deck_id=deck.id,
                succeeded=len(report.succeeded),
                failed=len(report.failed),
                cancelled=report.cancelled,
            )

    async def retry_slide(
        self,
        deck: Deck,
        position: int,
        style_assets: Sequence[ReferenceAsset],
    ) -> Deck:
        """Run one fresh generation attempt for a failed slide; never alongside a batch."""
        self._require_current(deck)
        slide = self._deck.get_slide(position)
        if slide.state is not SlideState.FAILED:
            raise InvalidSlideState(position, slide.state.value, "retry")

        claim = self._claim(deck, "retry")
        try:
            await self._transition(position, SlideEvent.START, action="retry")
            attempt = await self._attempt_generate(deck.id, slide, tuple(style_assets))
        finally:
            self._release(claim)
        if attempt is None:
            raise StaleDeckError(deck.id)
        return attempt.snapshot

    async def _attempt_generate(
        self,
        deck_id: str,
        slide: Slide,
        style_assets: Tuple[ReferenceAsset, ...],
    ) -> Optional[_Attempt]:
        """Returns None when the deck was discarded while the call was in flight."""
        position = slide.position
        try:
            image = await self.image_generator.generate(slide.visual_prompt, style_assets)
        except asyncio.CancelledError:
            await self._fail_if_current(deck_id, position, CANCELLED_MESSAGE)
            raise
        except Exception as e:
            failure = SlideGenerationFailed(position, describe_error(e))
            logger.error(
                "slide_generation_failed",
                **log_error_details(e, **log_slide_details(deck_id, position)),
            )
            if not self._is_current(deck_id):
                logger.info("stale_result_discarded", **log_slide_details(deck_id, position))
                return None
            snapshot = await self._transition(
                position, SlideEvent.FAIL, error=describe_error(e)
            )
            return _Attempt(SlideOutcome(position, False, failure), snapshot)

        if not self._is_current(deck_id):
            logger.info("stale_result_discarded", **log_slide_details(deck_id, position))
            return None

        snapshot = await self._transition(position, SlideEvent.SUCCEED, image=image)
        logger.info("slide_generated", **log_slide_details(deck_id, position))
        return _Attempt(SlideOutcome(position, True), snapshot)

    # Editing

    async def edit_slide(self, deck: Deck, position: int, instruction: str) -> Deck:
        """
        Replace a finished slide's image with an edited version.

        Raises:
            ValidationError: Blank instruction
            InvalidSlideState: Slide is not done (including an edit in flight)
            SlideEditFailed: The edit call failed; the slide is marked failed
                and keeps its previous image
            StaleDeckError: The deck was replaced before or during the call
        """
        self._require_current(deck)
        if not instruction or not instruction.strip():
            raise ValidationError("Edit instruction must not be empty", field="instruction")

        slide = self._deck.get_slide(position)
        if slide.state is not SlideState.DONE or slide.image is None:
            raise InvalidSlideState(position, slide.state.value, "edit")

        previous: SlideImage = slide.image
        await self._transition(position, SlideEvent.START, action="edit")
        logger.info("slide_edit_started", **log_slide_details(deck.id, position))

        try:
            image = await self.image_generator.edit(previous, instruction.strip())
        except asyncio.CancelledError:
            await self._fail_if_current(deck.id, position, CANCELLED_MESSAGE)
            raise
        except Exception as e:
            logger.error(
                "slide_edit_failed",
                **log_error_details(e, **log_slide_details(deck.id, position)),
            )
            await self._fail_if_current(deck.id, position, describe_error(e))
            raise SlideEditFailed(position, describe_error(e)) from e

        if not self._is_current(deck.id):
            logger.info("stale_result_discarded", **log_slide_details(deck.id, position))
            raise StaleDeckError(deck.id)

        snapshot = await self._transition(position, SlideEvent.SUCCEED, image=image)
        logger.info("slide_edited", **log_slide_details(deck.id, position))
        return snapshot

    # Import / export

    async def import_package(self, data: bytes) -> Deck:
        """
        Seed the deck from an existing PPTX.

        A package without any recoverable slide image returns an empty deck
        and leaves the current deck in place.

        Raises:
            InvalidPackage: The bytes are not a zip archive
        """
        entries = read_package(data)
        if not entries:
            logger.warning("package_import_empty")
            return Deck()

        slides = tuple(
            Slide(
                position=index,
                title=IMPORTED_TITLE.format(ordinal=entry.position),
                visual_prompt=IMPORTED_PROMPT,
                state=SlideState.DONE,
                image=entry.to_image(),
            )
            for index, entry in enumerate(entries, start=1)
        )
        deck = Deck(slides=slides)
        await self._replace(deck)
        logger.info("package_imported", deck_id=deck.id, slides=len(slides))
        return deck

    def export_package(self, deck: Optional[Deck] = None) -> bytes:
        """Serialize every slide that carries an image, in deck order."""
        deck = deck if deck is not None else (self._deck or Deck())
        images = deck.exportable_images()
        logger.info(
            "package_export",
            deck_id=deck.id,
            slides=len(deck.slides),
            exported=len(images),
        )
        return self.writer.write(images)

    async def discard(self) -> None:
        """Drop the current deck; in-flight results for it are ignored."""
        if self._deck is not None:
            logger.info("deck_discarded", deck_id=self._deck.id)
        self._deck = None
        self._history.clear()
        await self.publisher.publish(None)

    # Internals

    def _is_current(self, deck_id: str) -> bool:
        return self._deck is not None and self._deck.id == deck_id

    def _require_current(self, deck: Deck) -> None:
        if not self._is_current(deck.id):
            raise StaleDeckError(deck.id)

    def _claim(self, deck: Deck, operation: str) -> _Claim:
        """Generation calls against one deck never overlap."""
        running = self.busy_operation
        if running is not None:
            logger.warning("deck_busy", deck_id=deck.id, running=running, requested=operation)
            raise DeckBusyError(deck.id, running)
        self._busy = _Claim(deck.id, operation)
        return self._busy

    def _release(self, claim: _Claim) -> None:
        if self._busy is claim:
            self._busy = None

    def _reports_current_deck(self) -> bool:
        return self.last_report is not None and self._is_current(self.last_report.deck_id)

    async def _replace(self, deck: Deck) -> None:
        if self._deck is not None and self._deck.id != deck.id:
            logger.info("deck_replaced", previous_deck_id=self._deck.id, deck_id=deck.id)
        self._deck = deck
        self._history.clear()
        await self.publisher.publish(deck)

    async def _transition(
        self,
        position: int,
        event: SlideEvent,
        image: Optional[SlideImage] = None,
        error: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Deck:
        before = self._deck
        if before is None:
            raise StaleDeckError("none")
        after = apply_transition(before, position, event, image=image, error=error, action=action)
        self._deck = after
        change = describe_change(before, after, position, event)
        self._history.append(change)
        logger.debug(
            "slide_transition",
            deck_id=after.id,
            position=position,
            old_state=change.old_state.value,
            new_state=change.new_state.value,
            revision=after.revision,
        )
        await self.publisher.publish(after)
        return after

    async def _fail_if_current(self, deck_id: str, position: int, message: str) -> None:
        if self._is_current(deck_id):
            slide = self._deck.get_slide(position)
            if slide.state is SlideState.GENERATING:
                await self._transition(position, SlideEvent.FAIL, error=message)
