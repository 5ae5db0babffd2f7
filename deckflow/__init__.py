"""Deckflow - document intake and pitch deck analysis pipeline."""

__version__ = "0.1.0"
