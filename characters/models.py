"""
characters/models.py -- Domain dataclass for the characters resource.

Pure data container with zero logic. CharacterStore owns id assignment.
"""

from dataclasses import dataclass


@dataclass
class Character:
    id: int
    name: str
    last_name: str
