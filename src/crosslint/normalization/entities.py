"""Bind canonical paths to shared CanonicalEntity values."""

from typing import Optional

from ..models import CanonicalEntity


class EntityResolver:
    """Intern CanonicalEntity values for one pipeline run.

    Two resolutions of the same canonical path return the same object, so
    downstream stages may compare entities by identity or by value.
    """

    def __init__(self) -> None:
        self._entities: dict[str, CanonicalEntity] = {}

    def resolve(self, canonical_path: Optional[str]) -> Optional[CanonicalEntity]:
        if canonical_path is None:
            return None
        entity = self._entities.get(canonical_path)
        if entity is None:
            entity = CanonicalEntity(canonical_path)
            self._entities[canonical_path] = entity
        return entity

    def __len__(self) -> int:
        return len(self._entities)

    def paths(self) -> list[str]:
        return sorted(self._entities)
