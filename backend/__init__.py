"""Deckflow HTTP API."""
