"""Command executor for Skirmish.

Turns validated commands into intents for the game-state system:
movement along budgeted paths, melee and ranged attacks, speech that opens
a dialogue (or walks toward a listener first), and spawning.

The executor never mutates the snapshot. It re-reads the world from the
gateway before every decision it makes, so a half-finished command leaves
the world exactly as the last applied intent left it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from ..core.character import Character
from ..core.commands import (
    AttackCommand,
    AttackOrder,
    CharacterSpawnCommand,
    Command,
    ItemSpawnCommand,
    MapTransitionCommand,
    MovementCommand,
    SpeechCommand,
)
from ..core.errors import LocationResolutionError
from ..core.intents import (
    AddCharacter,
    AddItem,
    ApplyDamage,
    ChangeDirection,
    Intent,
    LoadMap,
    MoveAlongPath,
    OpenDialogue,
)
from ..core.types import (
    AI_CONTROLLER,
    HUMAN_CONTROLLER,
    AttackKind,
    CharacterName,
    Facing,
    Faction,
    Position,
    WeaponCategory,
)
from ..core.world import WorldSnapshot
from .context_builder import BlockageInfo
from .factions import FactionService
from .geometry import (
    GridPathService,
    PathService,
    detect_blocking_entity,
    direction_towards,
    distance,
    find_nearest_empty_cell,
    find_positions_with_line_of_sight,
    has_line_of_sight,
)
from .locations import LocationResolver

if TYPE_CHECKING:
    from ..adapters.gateway import GameStateGateway
    from ..config import OrchestratorConfig
    from .context_builder import ContextBuilder

logger = logging.getLogger(__name__)

OutcomeStatus = Literal["continue", "ended", "interrupted", "blocked"]


# -----------------------------------------------------------------------------
# Results
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ExecutionOutcome:
    """What executing one command did to the acting character's turn.

    - continue: something happened; the character may act again
    - ended: the character has nothing more to do this turn
    - interrupted: dialogue opened; the controller's turn stops now
    - blocked: a character stands in the way; decide again with `blockage`
    """

    status: OutcomeStatus
    message: str
    intents: tuple[Intent, ...] = ()
    destination: Position | None = None
    blockage: BlockageInfo | None = None

    @classmethod
    def proceed(
        cls,
        message: str,
        intents: list[Intent] | None = None,
        destination: Position | None = None,
    ) -> ExecutionOutcome:
        return cls(
            status="continue",
            message=message,
            intents=tuple(intents or []),
            destination=destination,
        )

    @classmethod
    def ended(cls, message: str, intents: list[Intent] | None = None) -> ExecutionOutcome:
        return cls(status="ended", message=message, intents=tuple(intents or []))

    @classmethod
    def interrupted(cls, message: str, intents: list[Intent] | None = None) -> ExecutionOutcome:
        return cls(status="interrupted", message=message, intents=tuple(intents or []))

    @classmethod
    def blocked(cls, blockage: BlockageInfo) -> ExecutionOutcome:
        return cls(status="blocked", message=blockage.message, blockage=blockage)

    @property
    def is_interrupt(self) -> bool:
        return self.status == "interrupted"


@dataclass
class PendingSpeech:
    """Speech waiting for its speaker to get within range of a listener."""

    command: SpeechCommand
    attempts: int = 0
    history: list[str] = field(default_factory=list)


# -----------------------------------------------------------------------------
# Executor
# -----------------------------------------------------------------------------


class CommandExecutor:
    """Executes typed commands by emitting intents through the gateway."""

    def __init__(
        self,
        gateway: "GameStateGateway",
        config: "OrchestratorConfig",
        context_builder: "ContextBuilder",
        path_service: PathService | None = None,
        locations: LocationResolver | None = None,
        factions: FactionService | None = None,
    ):
        self._gateway = gateway
        self._config = config
        self._context = context_builder
        self._paths = path_service or GridPathService()
        self._locations = locations or LocationResolver(config.empty_cell_search_radius)
        self._factions = factions or FactionService()
        self.pending_speech: dict[CharacterName, PendingSpeech] = {}

    async def execute(self, actor: Character, command: Command) -> ExecutionOutcome:
        """Execute a command on behalf of `actor`.

        Multi-character orders run in sequence; the outcome reported is the
        one for `actor`'s own order (or the last one). An interrupt stops
        the remaining orders immediately.
        """
        handlers = {
            "movement": self._execute_movement,
            "attack": self._execute_attack,
            "speech": self._execute_speech,
            "character": self._execute_character_spawn,
            "item": self._execute_item_spawn,
            "map": self._execute_map_transition,
        }
        handler = handlers.get(command.type)
        if handler is None:
            return ExecutionOutcome.ended(f"Unsupported command type: {command.type}")

        logger.debug(f"[{actor.name}] Executing {command.type}")
        return await handler(actor, command)

    # -------------------------------------------------------------------------
    # Movement
    # -------------------------------------------------------------------------

    async def _execute_movement(
        self, actor: Character, command: MovementCommand
    ) -> ExecutionOutcome:
        outcomes: dict[str, ExecutionOutcome] = {}
        for order in command.characters:
            outcome = await self.move(order.name, order.location)
            outcomes[order.name.lower()] = outcome
            if outcome.is_interrupt:
                return outcome
        return outcomes.get(actor.name.lower()) or list(outcomes.values())[-1]

    async def move(
        self,
        name: str,
        location: str,
        *,
        internal: bool = False,
        original_target: str | None = None,
    ) -> ExecutionOutcome:
        """Walk a character toward a textual location.

        `internal` marks engine-generated follow-ups: they may name "x,y"
        coordinates and go straight to the cell without adjacency shortcuts.
        """
        snapshot = self._gateway.snapshot()
        character = snapshot.get_character(name)
        if character is None or not character.is_alive:
            return ExecutionOutcome.ended(f"{name} cannot move")

        try:
            destination = self._locations.resolve(
                location, snapshot, mover=character.name, allow_coordinates=internal
            )
        except LocationResolutionError as e:
            logger.warning(f"[{character.name}] {e}")
            return ExecutionOutcome.ended(str(e))

        target_character = None if internal else snapshot.get_character(location)
        anchor = target_character.position if target_character else destination
        dist = distance(character.position, anchor)

        if not internal and dist <= self._config.adjacency_threshold:
            return await self._arrived(character, target_character, location)

        if dist == 0 or character.position.cell == destination.cell:
            return ExecutionOutcome.ended(f"{character.name} is already at {location}")

        path = self._paths.compute_path(
            character.position,
            destination,
            snapshot.map,
            snapshot.characters,
            exclude=character.name,
        )
        if not path:
            return self._no_path(character, destination, target_character, snapshot, original_target or location)

        cells = min(len(path), character.cells_affordable)
        if cells <= 0:
            logger.debug(f"[{character.name}] Not enough points to move ({character.points_left})")
            return ExecutionOutcome.ended(f"{character.name} has no action points left to move")

        steps = path[:cells]
        if snapshot.is_occupied(steps[-1], exclude=character.name):
            return ExecutionOutcome.ended(f"{character.name} cannot stop on an occupied cell")

        intent = MoveAlongPath(
            character=character.name,
            path=tuple(steps),
            points_spent=cells * character.move_cost,
        )
        await self._gateway.apply(intent)
        await self._settle()

        message = f"{character.name} moved {cells} cells toward {original_target or location}"
        self._context.record_event(message)
        logger.info(f"[{character.name}] {message}")
        return ExecutionOutcome.proceed(message, [intent], destination=destination)

    async def _arrived(
        self,
        character: Character,
        target_character: Character | None,
        location: str,
    ) -> ExecutionOutcome:
        """Next to the destination: deliver pending speech, greet, or stop."""
        pending = self.pending_speech.get(character.name)
        if pending is not None:
            return await self._speak(character, pending.command)

        if (
            target_character is not None
            and target_character.is_alive
            and target_character.is_main
            and target_character.controller != character.controller
        ):
            greeting = SpeechCommand(
                source=character.name,
                content=f"Greetings, {target_character.name}.",
                target=target_character.name,
            )
            logger.debug(f"[{character.name}] Greeting {target_character.name}")
            return await self._speak(character, greeting)

        return ExecutionOutcome.ended(f"{character.name} is already next to {location}")

    def _no_path(
        self,
        character: Character,
        destination: Position,
        target_character: Character | None,
        snapshot: WorldSnapshot,
        original_target: str,
    ) -> ExecutionOutcome:
        others = [
            c
            for c in snapshot.characters
            if c.name != character.name
            and (target_character is None or c.name != target_character.name)
        ]
        found = detect_blocking_entity(character.position, destination, snapshot.map, others)
        if found.kind != "character" or found.character is None:
            reason = "a wall" if found.kind == "wall" else "the terrain"
            return ExecutionOutcome.ended(
                f"{character.name} cannot find a path to {original_target} ({reason} is in the way)"
            )

        blocker = found.character
        is_ally = self._factions.is_allied(character, blocker, snapshot.factions)
        blockage = BlockageInfo(
            blocker=blocker.name,
            is_ally=is_ally,
            health=blocker.health,
            max_health=blocker.max_health,
            position=blocker.position,
            distance=round(distance(character.position, blocker.position), 2),
            original_target=original_target,
            message=f"Path to {original_target} is blocked by {blocker.name}.",
        )
        logger.info(f"[{character.name}] Blocked by {blocker.name} on the way to {original_target}")
        return ExecutionOutcome.blocked(blockage)

    # -------------------------------------------------------------------------
    # Attack
    # -------------------------------------------------------------------------

    async def _execute_attack(
        self, actor: Character, command: AttackCommand
    ) -> ExecutionOutcome:
        outcomes: dict[str, ExecutionOutcome] = {}
        for order in command.characters:
            outcome = await self.attack(order)
            outcomes[order.name.lower()] = outcome
            if outcome.is_interrupt:
                return outcome
        return outcomes.get(actor.name.lower()) or list(outcomes.values())[-1]

    async def attack(self, order: AttackOrder) -> ExecutionOutcome:
        snapshot = self._gateway.snapshot()
        attacker = snapshot.get_character(order.name)
        target = snapshot.get_character(order.target)
        if attacker is None or not attacker.is_alive:
            return ExecutionOutcome.ended(f"{order.name} cannot attack")
        if target is None or not target.is_alive:
            return ExecutionOutcome.ended(f"{order.target} is not a valid target")

        if order.attack == AttackKind.HOLD:
            return ExecutionOutcome.ended(f"{attacker.name} holds position against {target.name}")
        if order.attack == AttackKind.RETREAT:
            return await self._retreat(attacker, target, snapshot)

        weapon = attacker.weapon
        dist = distance(attacker.position, target.position)

        if dist <= self._config.adjacency_threshold:
            if attacker.points_left < weapon.cost:
                return ExecutionOutcome.ended(f"{attacker.name} has no action points left to attack")
            return await self._strike(attacker, target, WeaponCategory.MELEE)

        if not weapon.is_ranged:
            logger.debug(f"[{attacker.name}] {target.name} out of melee reach, closing in")
            return await self.move(attacker.name, target.name, original_target=target.name)

        if not has_line_of_sight(attacker.position, target.position, snapshot.map, snapshot.characters):
            logger.debug(f"[{attacker.name}] No line of fire to {target.name}, repositioning")
            return await self.move(attacker.name, target.name, original_target=target.name)

        if attacker.points_left < weapon.cost:
            return ExecutionOutcome.ended(f"{attacker.name} has no action points left to attack")

        facing = ChangeDirection(
            character=attacker.name,
            direction=direction_towards(attacker.position, target.position),
        )
        await self._gateway.apply(facing)
        outcome = await self._strike(attacker, target, WeaponCategory.RANGED)
        return ExecutionOutcome.proceed(outcome.message, [facing, *outcome.intents])

    async def _strike(
        self, attacker: Character, target: Character, category: WeaponCategory
    ) -> ExecutionOutcome:
        intent = ApplyDamage(
            attacker=attacker.name,
            target=target.name,
            category=category,
            amount=attacker.weapon.damage,
            points_spent=attacker.weapon.cost,
        )
        await self._gateway.apply(intent)
        await self._settle()
        verb = "shot" if category == WeaponCategory.RANGED else "struck"
        message = f"{attacker.name} {verb} {target.name} with {attacker.weapon.name}"
        self._context.record_event(message)
        logger.info(f"[{attacker.name}] {message}")
        return ExecutionOutcome.proceed(message, [intent])

    async def _retreat(
        self, attacker: Character, threat: Character, snapshot: WorldSnapshot
    ) -> ExecutionOutcome:
        rooms = snapshot.map.room_names()
        best: tuple[float, str] | None = None
        for room in rooms:
            center = self._locations.find_room_center(room, snapshot)
            if center is None:
                continue
            gap = distance(center, threat.position)
            if best is None or gap > best[0]:
                best = (gap, room)
        if best is None or best[0] <= distance(attacker.position, threat.position):
            return ExecutionOutcome.ended(f"{attacker.name} has nowhere to retreat")
        return await self.move(attacker.name, best[1], original_target=best[1])

    # -------------------------------------------------------------------------
    # Speech
    # -------------------------------------------------------------------------

    async def _execute_speech(
        self, actor: Character, command: SpeechCommand
    ) -> ExecutionOutcome:
        speaker = self._gateway.snapshot().get_character(command.source)
        if speaker is None or not speaker.is_alive:
            return ExecutionOutcome.ended(f"{command.source} cannot speak")
        return await self._speak(speaker, command)

    def can_talk_to(self, speaker: Character, listener: Character, snapshot: WorldSnapshot) -> bool:
        """Within conversation range with nothing but characters in between."""
        if distance(speaker.position, listener.position) > self._config.conversation_radius:
            return False
        return has_line_of_sight(
            speaker.position, listener.position, snapshot.map, ignore_characters=True
        )

    def conversation_partners(
        self, speaker: Character, snapshot: WorldSnapshot
    ) -> list[Character]:
        """Human-controlled characters the speaker can talk to right now.

        Range plus a wall-only line of sight; other characters never block
        a conversation.
        """
        partners = [
            other
            for other in snapshot.living()
            if other.name != speaker.name
            and other.is_human_controlled
            and self.can_talk_to(speaker, other, snapshot)
        ]
        partners.sort(key=lambda c: distance(speaker.position, c.position))
        return partners

    def is_overheard(self, speaker: Character, listener: Character, snapshot: WorldSnapshot) -> bool:
        """Whether a human is close enough to either party to follow the talk."""
        radius = self._config.eavesdrop_radius
        for human in snapshot.living():
            if not human.is_human_controlled or human.name in (speaker.name, listener.name):
                continue
            gap = min(
                distance(human.position, speaker.position),
                distance(human.position, listener.position),
            )
            if gap <= radius:
                return True
        return False

    async def _speak(self, speaker: Character, command: SpeechCommand) -> ExecutionOutcome:
        snapshot = self._gateway.snapshot()

        if command.target is not None:
            listener = snapshot.get_character(command.target)
            if (
                listener is not None
                and listener.is_alive
                and not listener.is_human_controlled
                and listener.name != speaker.name
            ):
                if self.can_talk_to(speaker, listener, snapshot):
                    overheard = self.is_overheard(speaker, listener, snapshot)
                    return await self._open_dialogue(speaker, listener, command, overheard)
                logger.debug(
                    f"[{speaker.name}] {listener.name} is out of earshot, looking for a human listener"
                )

        partners = self.conversation_partners(speaker, snapshot)
        if partners:
            chosen = partners[0]
            if command.target is not None:
                chosen = next(
                    (p for p in partners if p.name.lower() == command.target.lower()),
                    chosen,
                )
            return await self._open_dialogue(speaker, chosen, command)

        return await self._approach_listener(speaker, command, snapshot)

    async def _open_dialogue(
        self,
        speaker: Character,
        listener: Character,
        command: SpeechCommand,
        overheard: bool = False,
    ) -> ExecutionOutcome:
        intent = OpenDialogue(
            speaker=speaker.name,
            listener=listener.name,
            content=command.content,
            answers=tuple(command.answers),
            overheard=overheard,
        )
        await self._gateway.apply(intent)
        self.pending_speech.pop(speaker.name, None)
        self._context.record_conversation(speaker.name, command.content, listener.name)
        self._context.record_event(f"{speaker.name} spoke to {listener.name}")
        logger.info(f"[{speaker.name}] Dialogue opened with {listener.name}")
        return ExecutionOutcome.interrupted(
            f"{speaker.name} is talking to {listener.name}", [intent]
        )

    async def _approach_listener(
        self, speaker: Character, command: SpeechCommand, snapshot: WorldSnapshot
    ) -> ExecutionOutcome:
        """Queue the speech and walk toward the nearest human listener."""
        humans = [
            c for c in snapshot.living()
            if c.is_human_controlled and c.name != speaker.name
        ]
        if not humans:
            self.pending_speech.pop(speaker.name, None)
            return ExecutionOutcome.ended(f"{speaker.name} has no one to talk to")

        listener = min(humans, key=lambda c: distance(speaker.position, c.position))
        pending = self.pending_speech.get(speaker.name)
        if pending is None or pending.command is not command:
            pending = PendingSpeech(
                command=command,
                attempts=pending.attempts if pending else 0,
            )
        if pending.attempts >= self._config.pending_speech_attempts:
            self.pending_speech.pop(speaker.name, None)
            logger.info(f"[{speaker.name}] Gave up trying to reach {listener.name}")
            return ExecutionOutcome.ended(
                f"{speaker.name} gave up trying to reach {listener.name}"
            )

        pending.attempts += 1
        self.pending_speech[speaker.name] = pending

        if has_line_of_sight(speaker.position, listener.position, snapshot.map, ignore_characters=True):
            pending.history.append(listener.name)
            logger.debug(
                f"[{speaker.name}] Out of range of {listener.name}, approaching "
                f"(attempt {pending.attempts}/{self._config.pending_speech_attempts})"
            )
            return await self.move(speaker.name, listener.name, original_target=listener.name)

        spots = find_positions_with_line_of_sight(
            listener.position,
            speaker.position,
            snapshot.map,
            snapshot.characters,
            radius=self._config.conversation_radius,
            exclude=speaker.name,
        )
        if not spots:
            pending.history.append(listener.name)
            return await self.move(speaker.name, listener.name, original_target=listener.name)

        spot = spots[0]
        pending.history.append(str(spot))
        logger.debug(
            f"[{speaker.name}] No line of sight to {listener.name}, heading for {spot} "
            f"(attempt {pending.attempts}/{self._config.pending_speech_attempts})"
        )
        return await self.move(
            speaker.name, str(spot), internal=True, original_target=listener.name
        )

    async def deliver_pending_speech(self, speaker: Character) -> ExecutionOutcome | None:
        """Speak the queued line if a listener is now in range.

        Returns None when nothing is pending or no one is in range yet.
        """
        pending = self.pending_speech.get(speaker.name)
        if pending is None:
            return None
        if not self.conversation_partners(speaker, self._gateway.snapshot()):
            return None
        return await self._speak(speaker, pending.command)

    def drop_pending_speech(self, name: str) -> bool:
        return self.pending_speech.pop(CharacterName(name), None) is not None

    # -------------------------------------------------------------------------
    # Spawning
    # -------------------------------------------------------------------------

    async def _execute_character_spawn(
        self, actor: Character, command: CharacterSpawnCommand
    ) -> ExecutionOutcome:
        intents: list[Intent] = []
        for spec in command.characters:
            snapshot = self._gateway.snapshot()
            position = self._spawn_position(spec.location, snapshot)
            if position is None:
                logger.warning(f"[{actor.name}] No room to spawn {spec.name} at {spec.location}")
                continue

            if spec.faction == Faction.ENEMY:
                controller = AI_CONTROLLER
            elif spec.faction == Faction.PLAYER:
                controller = HUMAN_CONTROLLER
            else:
                controller = snapshot.turn

            character = Character(
                name=CharacterName(spec.name),
                faction=spec.faction.value,
                controller=controller,
                position=position,
                race=spec.race,
                speed=spec.speed,
                direction=Facing(spec.orientation.value),
                description=spec.description,
                health=100,
                max_health=100,
            )
            intent = AddCharacter(character=character)
            await self._gateway.apply(intent)
            intents.append(intent)
            self._context.record_event(f"{spec.name} appeared at {spec.location}")
            logger.info(f"[{actor.name}] Spawned {spec.name} at {position}")

        if not intents:
            return ExecutionOutcome.ended("Nothing could be spawned")
        return ExecutionOutcome.proceed(f"Spawned {len(intents)} character(s)", intents)

    async def _execute_item_spawn(
        self, actor: Character, command: ItemSpawnCommand
    ) -> ExecutionOutcome:
        intents: list[Intent] = []
        for item in command.items:
            snapshot = self._gateway.snapshot()
            position = self._spawn_position(item.location, snapshot)
            if position is None:
                logger.warning(f"[{actor.name}] No room to place {item.name} at {item.location}")
                continue
            intent = AddItem(
                name=item.name,
                kind=item.type,
                position=position,
                description=item.description,
            )
            await self._gateway.apply(intent)
            intents.append(intent)
            self._context.record_event(f"{item.name} appeared at {item.location}")

        if not intents:
            return ExecutionOutcome.ended("Nothing could be placed")
        return ExecutionOutcome.proceed(f"Placed {len(intents)} item(s)", intents)

    def _spawn_position(self, location: str, snapshot: WorldSnapshot) -> Position | None:
        try:
            position = self._locations.resolve(location, snapshot)
        except LocationResolutionError as e:
            logger.warning(str(e))
            return None
        if snapshot.map.is_blocked(position) or snapshot.is_occupied(position):
            return find_nearest_empty_cell(
                position,
                snapshot.map,
                snapshot.characters,
                max_radius=self._config.empty_cell_search_radius,
            )
        return position

    # -------------------------------------------------------------------------
    # Map transition
    # -------------------------------------------------------------------------

    async def _execute_map_transition(
        self, actor: Character, command: MapTransitionCommand
    ) -> ExecutionOutcome:
        intent = LoadMap(terrain=command.palette.terrain, buildings=tuple(command.buildings))
        await self._gateway.apply(intent)
        self._context.record_event(f"The scene moved to new {command.palette.terrain} terrain")
        logger.info(f"[{actor.name}] Map transition to {command.palette.terrain}")
        return ExecutionOutcome.ended("Map changed", [intent])

    async def _settle(self) -> None:
        if self._config.settle_delay > 0:
            await asyncio.sleep(self._config.settle_delay)
