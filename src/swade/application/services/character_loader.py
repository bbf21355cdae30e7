from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from swade.application.dtos import ValidationWarning
from swade.domain.errors import NotFoundError, ValidationFailedError
from swade.domain.models.catalog import Catalog
from swade.domain.models.change_set import ChangeSet
from swade.domain.models.character import Character
from swade.domain.models.character_view import CharacterView
from swade.domain.repositories import CatalogRepository, CharacterRepository
from swade.domain.services.modifier_aggregation import build_character_view

AtomicPersistor = Callable[[ChangeSet], None]


@dataclass
class LoadedCharacter:
    character: Character
    catalog: Catalog
    view: CharacterView


class CharacterLoader:
    """Loads stored characters and aggregates them against the rules catalog."""

    def __init__(self, character_repo: CharacterRepository, catalog_repo: CatalogRepository) -> None:
        self.character_repo = character_repo
        self.catalog_repo = catalog_repo
        self._catalog: Optional[Catalog] = None

    def catalog(self) -> Catalog:
        if self._catalog is None:
            self._catalog = self.catalog_repo.load()
        return self._catalog

    def load(self, character_id: int) -> LoadedCharacter:
        character = self.character_repo.get(int(character_id))
        if character is None:
            raise NotFoundError(f"Character with id {character_id} does not exist")
        catalog = self.catalog()
        return LoadedCharacter(character=character, catalog=catalog, view=build_character_view(character, catalog))

    def view(self, character_id: int) -> CharacterView:
        return self.load(character_id).view

    def list_characters(self) -> List[Character]:
        return sorted(self.character_repo.list_all(), key=lambda row: int(row.id or 0))


def raise_or_warn(
    error: ValidationFailedError,
    *,
    bypass_validation: bool,
    warnings: List[ValidationWarning],
    logger: logging.Logger,
) -> None:
    """Raise ``error`` unless the caller bypasses validation and the rule allows it."""
    if not bypass_validation or not error.bypassable:
        raise error
    logger.warning("Validation bypassed (%s): %s", error.warning_type, error.message)
    warnings.append(ValidationWarning(warning_type=str(error.warning_type), message=error.message))
