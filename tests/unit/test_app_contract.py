import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from swade.application import dtos
from swade.application.contract import (
    ADVANCEMENT_COMMAND_INTENTS,
    ADVANCEMENT_QUERY_INTENTS,
    CHARACTER_COMMAND_INTENTS,
    CHARACTER_QUERY_INTENTS,
    CONTRACT_DTO_TYPES,
    CONTRACT_VERSION,
)
from swade.application.services.advancement_service import AdvancementService
from swade.application.services.character_service import CharacterService


class ApplicationContractTests(unittest.TestCase):
    def test_contract_version_uses_semver(self) -> None:
        self.assertRegex(CONTRACT_VERSION, r"^\d+\.\d+\.\d+$")

    def test_advancement_service_implements_declared_intents(self) -> None:
        for name in ADVANCEMENT_COMMAND_INTENTS + ADVANCEMENT_QUERY_INTENTS:
            self.assertTrue(hasattr(AdvancementService, name), f"Missing contract intent: {name}")

    def test_character_service_implements_declared_intents(self) -> None:
        for name in CHARACTER_COMMAND_INTENTS + CHARACTER_QUERY_INTENTS:
            self.assertTrue(hasattr(CharacterService, name), f"Missing contract intent: {name}")

    def test_declared_dto_types_exist(self) -> None:
        for dto_name in CONTRACT_DTO_TYPES:
            self.assertTrue(hasattr(dtos, dto_name), f"Missing contract DTO: {dto_name}")


if __name__ == "__main__":
    unittest.main()
