"""Tests for skirmish.services.context_builder module."""

from skirmish.config import OrchestratorConfig
from skirmish.core import ControllerId, Relation, Weapon, WeaponCategory, WorldSnapshot
from skirmish.services.context_builder import BlockageInfo, ContextBuilder, threat_level
from tests.fixtures import make_character, make_map


def _snapshot(*characters, walls=None) -> WorldSnapshot:
    return WorldSnapshot(
        map=make_map(rooms={"Bridge": (8, 8, 12, 12)}, walls=walls),
        characters=characters,
        turn=ControllerId("ai"),
    )


# =============================================================================
# Visibility
# =============================================================================


class TestVisibility:
    """Who ends up in the visible list."""

    def test_self_excluded(self, context_builder: ContextBuilder, snapshot: WorldSnapshot):
        guard = snapshot.get_character("Guard")
        context = context_builder.build(guard, snapshot)
        assert context.get_visible("Guard") is None
        assert context.character.name == "Guard"

    def test_sorted_by_distance(self, context_builder: ContextBuilder, snapshot: WorldSnapshot):
        guard = snapshot.get_character("Guard")
        context = context_builder.build(guard, snapshot)
        assert [v.name for v in context.visible] == ["Sniper", "Hero"]

    def test_view_radius(self, context_builder: ContextBuilder):
        me = make_character("Me", 0, 0)
        near = make_character("Near", 15, 0, controller="human")
        far = make_character("Far", 16, 0, controller="human")
        context = context_builder.build(me, _snapshot(me, near, far))
        assert context.get_visible("Near") is not None
        assert context.get_visible("Far") is None

    def test_dead_characters_excluded(self, context_builder: ContextBuilder):
        me = make_character("Me", 0, 0)
        body = make_character("Body", 2, 0, controller="human", health=0)
        context = context_builder.build(me, _snapshot(me, body))
        assert context.visible == ()
        assert context.hostiles == ()

    def test_walls_hide(self, context_builder: ContextBuilder):
        me = make_character("Me", 0, 0)
        hidden = make_character("Hidden", 4, 0, controller="human")
        context = context_builder.build(me, _snapshot(me, hidden, walls=[(2, 0)]))
        assert context.get_visible("Hidden") is None

    def test_characters_block_line_of_fire_not_sight(self, context_builder: ContextBuilder):
        me = make_character("Me", 0, 0)
        friend = make_character("Friend", 2, 0)
        enemy = make_character("Enemy", 4, 0, controller="human")
        context = context_builder.build(me, _snapshot(me, friend, enemy))
        entry = context.get_visible("Enemy")
        assert entry is not None
        assert not entry.has_line_of_sight
        assert context.get_visible("Friend").has_line_of_sight

    def test_flags(self, context_builder: ContextBuilder):
        me = make_character("Me", 0, 0, points_left=60)
        adjacent = make_character("Adjacent", 1, 1, controller="human")
        reachable = make_character("Reachable", 0, 3, controller="human")
        distant = make_character("Distant", 0, 10, controller="human")
        context = context_builder.build(me, _snapshot(me, adjacent, reachable, distant))

        assert context.get_visible("Adjacent").is_adjacent
        assert not context.get_visible("Reachable").is_adjacent
        assert context.get_visible("Reachable").can_reach_this_turn
        assert not context.get_visible("Distant").can_reach_this_turn

    def test_cover_next_to_wall(self, context_builder: ContextBuilder):
        me = make_character("Me", 0, 0)
        covered = make_character("Covered", 6, 5, controller="human")
        exposed = make_character("Exposed", 3, 8, controller="human")
        context = context_builder.build(me, _snapshot(me, covered, exposed, walls=[(7, 4)]))

        assert context.get_visible("Covered").is_in_cover
        assert not context.get_visible("Exposed").is_in_cover


# =============================================================================
# Conversation range
# =============================================================================


class TestConversationRange:
    """Conversation eligibility is distance plus a wall-only line of sight."""

    def test_characters_in_between_do_not_matter(self, context_builder: ContextBuilder):
        me = make_character("Me", 0, 0)
        crowd = [make_character(f"Crowd{i}", i, 0) for i in range(1, 4)]
        listener = make_character("Listener", 4, 0, controller="human")
        context = context_builder.build(me, _snapshot(me, *crowd, listener))
        assert "Listener" in context.in_conversation_range
        assert context.get_visible("Listener").can_converse

    def test_wall_prevents_conversation(self, context_builder: ContextBuilder):
        me = make_character("Me", 0, 0)
        listener = make_character("Listener", 4, 0, controller="human")
        context = context_builder.build(me, _snapshot(me, listener, walls=[(2, 0)]))
        assert context.in_conversation_range == ()

    def test_radius(self, context_builder: ContextBuilder):
        me = make_character("Me", 0, 0)
        at_edge = make_character("Edge", 8, 0, controller="human")
        beyond = make_character("Beyond", 0, 9, controller="human")
        context = context_builder.build(me, _snapshot(me, at_edge, beyond))
        assert context.in_conversation_range == ("Edge",)


# =============================================================================
# Relations, story and history
# =============================================================================


class TestContextContents:
    """Everything else the oracle is told."""

    def test_allies_and_hostiles(self, context_builder: ContextBuilder, snapshot: WorldSnapshot):
        context = context_builder.build(snapshot.get_character("Guard"), snapshot)
        assert context.allies == ("Sniper",)
        assert context.hostiles == ("Hero",)
        assert context.get_visible("Hero").relation == Relation.HOSTILE

    def test_story_and_rooms(self, context_builder: ContextBuilder, snapshot: WorldSnapshot):
        context = context_builder.build(snapshot.get_character("Guard"), snapshot)
        assert context.mission == "Hold the bridge"
        assert context.story_flags == {"alarm": False}
        assert context.rooms == ("Bridge", "Brig")
        assert context.turn == "ai"

    def test_current_room(self, context_builder: ContextBuilder, snapshot: WorldSnapshot):
        hero = snapshot.get_character("Hero")
        assert context_builder.build(hero, snapshot).character.room == "Bridge"
        guard = snapshot.get_character("Guard")
        assert context_builder.build(guard, snapshot).character.room == "Unknown Location"

    def test_blockage_passed_through(self, context_builder: ContextBuilder, snapshot: WorldSnapshot):
        blockage = BlockageInfo(
            blocker="Sniper",
            is_ally=True,
            health=100,
            max_health=100,
            position=(2, 6),
            distance=4.0,
            original_target="Bridge",
            message="Path to Bridge is blocked by Sniper.",
        )
        context = context_builder.build(snapshot.get_character("Guard"), snapshot, blockage)
        assert context.blockage == blockage

    def test_event_history_is_bounded(self, snapshot: WorldSnapshot):
        builder = ContextBuilder(OrchestratorConfig(event_history_size=3))
        for i in range(5):
            builder.record_event(f"event {i}")
        assert builder.events == ["event 2", "event 3", "event 4"]
        context = builder.build(snapshot.get_character("Guard"), snapshot)
        assert context.recent_events == ("event 2", "event 3", "event 4")

    def test_only_recent_conversation_lines(self, snapshot: WorldSnapshot):
        builder = ContextBuilder(OrchestratorConfig(conversation_lines_in_context=2))
        builder.record_conversation("Guard", "Halt!", "Hero")
        builder.record_conversation("Hero", "Never.", "Guard")
        builder.record_conversation("Guard", "Then fight.", "Hero")
        context = builder.build(snapshot.get_character("Guard"), snapshot)
        assert [line.content for line in context.conversation] == ["Never.", "Then fight."]
        assert len(builder.conversation) == 3

    def test_building_does_not_mutate_snapshot(self, context_builder: ContextBuilder, snapshot: WorldSnapshot):
        before = snapshot.model_copy(deep=True)
        context_builder.build(snapshot.get_character("Guard"), snapshot)
        assert snapshot == before


class TestThreatLevel:
    def test_allies_are_harmless(self):
        a = make_character("A", 0, 0)
        b = make_character("B", 1, 0)
        assert threat_level(a, b, 1.0, Relation.ALLIED) == 0

    def test_close_armed_enemy_is_dangerous(self):
        a = make_character("A", 0, 0)
        rifle = Weapon(name="rifle", category=WeaponCategory.RANGED)
        near = make_character("Near", 1, 0, controller="human", weapon=rifle)
        far = make_character("Far", 12, 0, controller="human")
        assert threat_level(a, near, 1.0, Relation.HOSTILE) == 100
        assert threat_level(a, far, 12.0, Relation.HOSTILE) == 70
