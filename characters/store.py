"""
characters/store.py -- In-memory persistence layer for characters.

Pattern: Repository. CharacterStore is the only code that touches the
id -> Character mapping. Missing ids are reported as None / False; the route
layer turns those into 404s.

Usage:
    store = CharacterStore()
    c = store.create("Rick", "Sanchez")
    store.update(c.id, name="Morty")
    store.delete(c.id)
"""

from __future__ import annotations

import threading
from dataclasses import replace

from characters.models import Character
from core.ids import MillisecondIds


class CharacterStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._characters: dict[int, Character] = {}
        self._ids = MillisecondIds()

    def __len__(self) -> int:
        with self._lock:
            return len(self._characters)

    def list_characters(self) -> list[Character]:
        """Return every character in creation order."""
        with self._lock:
            return [replace(c) for c in self._characters.values()]

    def get(self, character_id: int) -> Character | None:
        with self._lock:
            character = self._characters.get(character_id)
            return replace(character) if character is not None else None

    def create(self, name: str, last_name: str) -> Character:
        """Insert a new character with a fresh id and return a copy of it."""
        with self._lock:
            character = Character(id=self._ids.next_id(), name=name, last_name=last_name)
            self._characters[character.id] = character
            return replace(character)

    def update(self, character_id: int, name: str | None = None, last_name: str | None = None) -> Character | None:
        """Apply a partial update. Fields left as None keep their current value.

        Returns the updated character, or None if character_id is unknown.
        """
        with self._lock:
            character = self._characters.get(character_id)
            if character is None:
                return None
            if name is not None:
                character.name = name
            if last_name is not None:
                character.last_name = last_name
            return replace(character)

    def delete(self, character_id: int) -> bool:
        """Remove a character. Returns True if deleted, False if not found."""
        with self._lock:
            return self._characters.pop(character_id, None) is not None
