"""
PPTX import: recover one image per slide from a presentation package.

The reader walks slide -> relationship document -> media entry directly
over the zip archive instead of loading the package through python-pptx,
so decks that python-pptx refuses (missing parts, odd content types) still
yield whatever images can be reached. It is a best-effort recovery, not a
validating parser.
"""
import io
import posixpath
import re
import zipfile
from typing import List, Optional, Tuple

import lxml.etree

from prodeck.core.exceptions import InvalidPackage
from prodeck.core.logging import get_logger
from prodeck.domain.schemas.deck import PackageEntry

logger = get_logger(__name__)

SLIDES_DIR = "ppt/slides/"
PACKAGE_ROOT = "ppt/"
SLIDE_PATTERN = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
IMAGE_RELATIONSHIP_MARKER = "/image"
PARENT_DIR_MARKER = "../"

JPEG_EXTENSIONS = {"jpg", "jpeg"}

_parser = lxml.etree.XMLParser(resolve_entities=False, no_network=True)


def slide_documents(names: List[str]) -> List[Tuple[int, str]]:
    """Slide document paths with their ordinals, sorted numerically."""
    found = []
    for name in names:
        match = SLIDE_PATTERN.match(name)
        if match:
            found.append((int(match.group(1)), name))
    return sorted(found)


def relationships_path(slide_path: str) -> str:
    """ppt/slides/slideN.xml -> ppt/slides/_rels/slideN.xml.rels"""
    directory, filename = posixpath.split(slide_path)
    return f"{directory}/_rels/{filename}.rels"


def first_image_target(rels_xml: bytes) -> Optional[str]:
    """Target of the first relationship whose type denotes an image."""
    root = lxml.etree.fromstring(rels_xml, parser=_parser)
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        if lxml.etree.QName(element).localname != "Relationship":
            continue
        if IMAGE_RELATIONSHIP_MARKER in (element.get("Type") or ""):
            return element.get("Target") or None
    return None


def resolve_target(target: str) -> str:
    """Resolve a relationship target against the package root."""
    if target.startswith(PARENT_DIR_MARKER):
        return PACKAGE_ROOT + target.replace(PARENT_DIR_MARKER, "", 1)
    return SLIDES_DIR + target


def mime_type_for(path: str) -> str:
    extension = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return "image/jpeg" if extension in JPEG_EXTENSIONS else "image/png"


def read_package(data: bytes) -> List[PackageEntry]:
    """
    Extract the ordered slide images from a PPTX byte stream.

    Args:
        data: Raw bytes of the package

    Returns:
        One entry per slide that has a resolvable image, ordered by slide
        number. Empty when no slide carries one.

    Raises:
        InvalidPackage: If the bytes are not a zip archive
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as e:
        raise InvalidPackage(f"Failed to open package: {e}") from e

    entries: List[PackageEntry] = []
    with archive:
        names = set(archive.namelist())
        slides = slide_documents(list(names))

        for ordinal, slide_path in slides:
            entry = _read_slide_image(archive, names, ordinal, slide_path)
            if entry is not None:
                entries.append(entry)

    logger.info(
        "package_read",
        slides_found=len(slides),
        images_recovered=len(entries),
    )
    return entries


def _read_slide_image(
    archive: zipfile.ZipFile,
    names: set,
    ordinal: int,
    slide_path: str,
) -> Optional[PackageEntry]:
    rels_path = relationships_path(slide_path)
    if rels_path not in names:
        logger.debug("slide_without_relationships", slide=ordinal)
        return None

    try:
        target = first_image_target(archive.read(rels_path))
    except (lxml.etree.XMLSyntaxError, zipfile.BadZipFile) as e:
        logger.warning("slide_relationships_unreadable", slide=ordinal, error=str(e))
        return None

    if not target:
        logger.debug("slide_without_image", slide=ordinal)
        return None

    media_path = resolve_target(target)
    if media_path not in names:
        logger.warning("slide_media_missing", slide=ordinal, target=target, path=media_path)
        return None

    try:
        media = archive.read(media_path)
    except zipfile.BadZipFile as e:
        logger.warning("slide_media_unreadable", slide=ordinal, path=media_path, error=str(e))
        return None

    return PackageEntry(
        position=ordinal,
        data=media,
        mime_type=mime_type_for(media_path),
    )
