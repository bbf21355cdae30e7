from __future__ import annotations

import copy
from collections.abc import Callable

from swade.domain.errors import NotFoundError, StorageFailureError
from swade.domain.models.change_set import ChangeSet, apply_change_set


def create_inmemory_atomic_persistor(character_repo) -> Callable[[ChangeSet], None]:
    def _persist(change_set: ChangeSet) -> None:
        snapshot = copy.deepcopy(getattr(character_repo, "_characters", {}))
        character = character_repo.get(change_set.character_id)
        if character is None:
            raise NotFoundError(f"Character with id {change_set.character_id} does not exist")
        try:
            apply_change_set(character, change_set)
            character_repo.save(character)
        except Exception as exc:
            if hasattr(character_repo, "_characters"):
                character_repo._characters = snapshot
            raise StorageFailureError(f"Failed to persist changes for character {change_set.character_id}: {exc}") from exc

    return _persist
