"""
Deck orchestration services.
"""
from .orchestrator import BatchReport, DeckOrchestrator, SlideOutcome
from .registry import DeckSession, DeckSessionRegistry
from .state import DeckPublisher, SlideEvent, apply_transition

__all__ = [
    "BatchReport",
    "DeckOrchestrator",
    "DeckPublisher",
    "DeckSession",
    "DeckSessionRegistry",
    "SlideEvent",
    "SlideOutcome",
    "apply_transition",
]
