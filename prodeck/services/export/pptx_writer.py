"""
PPTX export: one full-bleed picture per slide.

Slides carry no text, shapes or notes. Each image is stretched to the full
slide frame; source images are expected to be composed for 16:9 already.
"""
import io
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol, Tuple, Union

from pptx import Presentation
from pptx.presentation import Presentation as PresentationType
from pptx.util import Inches

from prodeck.core.config import get_settings
from prodeck.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

BLANK_LAYOUT_INDEX = 6


class HasImageData(Protocol):
    data: bytes


ImageItem = Optional[Union[HasImageData, bytes]]


@dataclass
class ExportConfig:
    """Slide geometry for exported decks."""
    slide_size: Tuple[float, float] = (
        settings.EXPORT_SLIDE_WIDTH_INCHES,
        settings.EXPORT_SLIDE_HEIGHT_INCHES,
    )


def _image_bytes(item: ImageItem) -> Optional[bytes]:
    if item is None:
        return None
    if isinstance(item, (bytes, bytearray)):
        return bytes(item) or None
    return getattr(item, "data", None) or None


class PackageWriter:
    """Builds a picture-only presentation from ordered slide images."""

    def __init__(self, config: Optional[ExportConfig] = None):
        self.config = config or ExportConfig()
        self.logger = get_logger(self.__class__.__name__)

    def create_presentation(self, images: Iterable[ImageItem]) -> PresentationType:
        """
        Create a presentation with one slide per image.

        Args:
            images: Ordered images; None or empty entries are skipped

        Returns:
            python-pptx presentation object
        """
        presentation = Presentation()
        presentation.slide_width = Inches(self.config.slide_size[0])
        presentation.slide_height = Inches(self.config.slide_size[1])
        layout = presentation.slide_layouts[BLANK_LAYOUT_INDEX]

        skipped = 0
        for item in images:
            data = _image_bytes(item)
            if data is None:
                skipped += 1
                continue
            slide = presentation.slides.add_slide(layout)
            slide.shapes.add_picture(
                io.BytesIO(data),
                0,
                0,
                width=presentation.slide_width,
                height=presentation.slide_height,
            )

        self.logger.info(
            "presentation_created",
            slides=len(presentation.slides),
            skipped=skipped,
        )
        return presentation

    def write(self, images: Iterable[ImageItem]) -> bytes:
        """Serialize the images to PPTX bytes."""
        presentation = self.create_presentation(images)
        buffer = io.BytesIO()
        presentation.save(buffer)
        return buffer.getvalue()


def write_package(images: Iterable[ImageItem], config: Optional[ExportConfig] = None) -> bytes:
    """Serialize ordered slide images to a PPTX package."""
    return PackageWriter(config).write(images)


def export_filename(now: Optional[datetime] = None) -> str:
    """Download name such as ProDeck_2024-05-01T10-00-00Z.pptx"""
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")
    return f"{settings.EXPORT_FILENAME_PREFIX}_{stamp}.pptx"
