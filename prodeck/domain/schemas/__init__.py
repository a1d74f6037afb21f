"""
Domain schemas for ProDeck application.
"""

from .deck import *

__all__ = [
    "SlideState",
    "SlideImage",
    "ReferenceAsset",
    "SlideSpec",
    "Slide",
    "Deck",
    "PackageEntry",
    "SlideRead",
    "DeckRead",
    "ImportRead",
    "EditSlideRequest",
]
