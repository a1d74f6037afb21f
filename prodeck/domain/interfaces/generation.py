"""
Generation capability interfaces.

Backends satisfy these structurally; the orchestrator depends on nothing
else from them.
"""
from typing import List, Protocol, Sequence, runtime_checkable

from prodeck.domain.schemas.deck import ReferenceAsset, SlideImage, SlideSpec


@runtime_checkable
class Planner(Protocol):
    """Turns a brief and reference assets into an ordered list of slide specs."""

    async def plan(
        self,
        brief: str,
        style_assets: Sequence[ReferenceAsset],
        content_assets: Sequence[ReferenceAsset],
        count: int,
    ) -> List[SlideSpec]:
        ...


@runtime_checkable
class ImageGenerator(Protocol):
    """Renders or edits a single slide image."""

    async def generate(
        self,
        prompt: str,
        style_assets: Sequence[ReferenceAsset],
    ) -> SlideImage:
        ...

    async def edit(self, image: SlideImage, instruction: str) -> SlideImage:
        ...
