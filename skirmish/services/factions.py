"""Faction relations for Skirmish."""

from __future__ import annotations

from ..core.character import Character
from ..core.types import Relation
from ..core.world import FactionRelations, WorldSnapshot


class FactionService:
    """Answers how two characters regard each other.

    Without an explicit relation table, allegiance follows the controller:
    characters steered by the same side are allied. With a table, same
    faction is allied and the allied/hostile lists are consulted in both
    directions; anything unlisted is neutral.
    """

    def relation(
        self, a: Character, b: Character, relations: FactionRelations
    ) -> Relation:
        if not relations.configured:
            if a.controller == b.controller:
                return Relation.ALLIED
            return Relation.HOSTILE

        if a.faction == b.faction:
            return Relation.ALLIED
        if self._listed(relations.allied, a.faction, b.faction):
            return Relation.ALLIED
        if self._listed(relations.hostile, a.faction, b.faction):
            return Relation.HOSTILE
        return Relation.NEUTRAL

    def is_hostile(self, a: Character, b: Character, relations: FactionRelations) -> bool:
        return self.relation(a, b, relations) == Relation.HOSTILE

    def is_allied(self, a: Character, b: Character, relations: FactionRelations) -> bool:
        return self.relation(a, b, relations) == Relation.ALLIED

    def living_hostiles(self, character: Character, snapshot: WorldSnapshot) -> list[Character]:
        return [
            other
            for other in snapshot.living()
            if other.name != character.name
            and self.is_hostile(character, other, snapshot.factions)
        ]

    @staticmethod
    def _listed(table: dict[str, tuple[str, ...]], a: str, b: str) -> bool:
        return b in table.get(a, ()) or a in table.get(b, ())
