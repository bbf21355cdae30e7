from typing import Dict, List

from swade.domain.models.catalog import Catalog
from swade.domain.models.character import Character
from swade.domain.repositories import CatalogRepository, CharacterRepository


class InMemoryCharacterRepository(CharacterRepository):
    def __init__(self, initial: Dict[int, Character]) -> None:
        self._characters = dict(initial)

    def get(self, character_id: int) -> Character | None:
        return self._characters.get(int(character_id))

    def list_all(self) -> List[Character]:
        return list(self._characters.values())

    def save(self, character: Character) -> None:
        self._characters[int(character.id)] = character

    def create(self, character: Character) -> Character:
        next_id = max(self._characters.keys(), default=0) + 1
        character.id = next_id
        self._characters[next_id] = character
        return character


class InMemoryCatalogRepository(CatalogRepository):
    def __init__(self, catalog: Catalog) -> None:
        self._catalog = catalog

    def load(self) -> Catalog:
        return self._catalog
