"""Character model for Skirmish.

Characters are owned by the world snapshot. The orchestration engine only
reads them and requests changes through intents.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from .types import (
    CharacterName,
    ControllerId,
    Facing,
    HUMAN_CONTROLLER,
    Position,
    Race,
    Speed,
    WeaponCategory,
)

DEFAULT_MOVE_COST = 20


class Weapon(BaseModel):
    """Equipped weapon. Combat resolution itself happens outside the engine."""

    model_config = ConfigDict(frozen=True)

    name: str = "fists"
    category: WeaponCategory = WeaponCategory.MELEE
    damage: int = 10
    cost: int = 25

    @property
    def is_ranged(self) -> bool:
        return self.category == WeaponCategory.RANGED


class Character(BaseModel):
    """A character on the map.

    Faction drives hostility, controller drives turn ownership; the two are
    independent (a neutral faction may be AI-controlled, for example).
    """

    model_config = ConfigDict(frozen=True)

    name: CharacterName
    faction: str
    controller: ControllerId
    position: Position
    race: Race = Race.HUMAN
    health: int = 100
    max_health: int = 100
    direction: Facing = Facing.BOTTOM
    points_left: int = 100
    max_points: int = 100
    move_cost: int = DEFAULT_MOVE_COST
    speed: Speed = Speed.MEDIUM
    weapon: Weapon = Weapon()
    inventory: tuple[str, ...] = ()
    description: str = ""
    is_main: bool = False

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    @property
    def is_human_controlled(self) -> bool:
        return self.controller == HUMAN_CONTROLLER

    @property
    def health_ratio(self) -> float:
        if self.max_health <= 0:
            return 0.0
        return self.health / self.max_health

    @property
    def cells_affordable(self) -> int:
        """How many cells the remaining action points pay for."""
        if self.move_cost <= 0:
            return 0
        return max(0, self.points_left) // self.move_cost

    # --- Copy helpers ---

    def with_position(self, position: Position) -> Character:
        return self.model_copy(update={"position": position})

    def with_points(self, points_left: int) -> Character:
        return self.model_copy(update={"points_left": max(0, points_left)})

    def with_fresh_points(self) -> Character:
        return self.model_copy(update={"points_left": self.max_points})

    def with_direction(self, direction: Facing) -> Character:
        return self.model_copy(update={"direction": direction})

    def with_health(self, health: int) -> Character:
        return self.model_copy(update={"health": max(0, min(health, self.max_health))})
