"""
ProDeck: AI slide deck builder with PPTX import and export.
"""

__version__ = "0.1.0"
