from abc import ABC, abstractmethod
from typing import List, Optional

from swade.domain.models.catalog import Catalog
from swade.domain.models.character import Character


class CharacterRepository(ABC):
    @abstractmethod
    def get(self, character_id: int) -> Optional[Character]:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> List[Character]:
        raise NotImplementedError

    @abstractmethod
    def save(self, character: Character) -> None:
        raise NotImplementedError

    @abstractmethod
    def create(self, character: Character) -> Character:
        raise NotImplementedError


class CatalogRepository(ABC):
    @abstractmethod
    def load(self) -> Catalog:
        raise NotImplementedError
