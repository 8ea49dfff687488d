"""
Tests for SoloRunController flows.

Tests cover:
- Starting a run and a next game
- A full round played through the controller
- Automatic round end when the pools run dry
- Tome scoring of isolated placements
- Consistency violations
- Deck draft and disenchant between games
- Hydrating saved runs
"""

import random

from spellwall.types import RuneId, RuneType, RunStatus, ArtefactId, ErrorKind, SourceId, CENTER_SOURCE_ID
from spellwall.config import SoloRunConfig
from spellwall.events import (
    GameStartedEvent,
    SegmentResolvedEvent,
    RoundEndedEvent,
    DefeatEvent,
    VictoryEvent,
    DeckDraftPickedEvent,
    RuneDisenchantedEvent,
    ActionInvalidEvent,
)
from spellwall.serialization import state_to_dict
from spellwall.controller import SoloRunController, create_test_state, make_rune


FORGE_1 = SourceId("runeforge-1")


def seeded_controller(seed: int = 0, config: SoloRunConfig | None = None) -> SoloRunController:
    return SoloRunController(config or SoloRunConfig(), rng=random.Random(seed))


# =============================================================================
# Run Lifecycle
# =============================================================================


class TestStartRun:
    """Tests for starting a run."""

    def test_start_run(self) -> None:
        state, events = seeded_controller().start_run()

        assert state.status == RunStatus.NOT_STARTED
        assert state.game_index == 0
        assert state.player_stats.current_health == 100
        assert state.rune_score.target == 30
        assert sum(len(f.runes) for f in state.runeforges) == 20
        assert isinstance(events[0], GameStartedEvent)

    def test_start_run_with_artefacts_and_deck(self) -> None:
        deck = [make_rune(RuneType.FIRE, f"f{i}") for i in range(8)]

        state, _ = seeded_controller().start_run(active_artefacts={ArtefactId.TOME}, deck=deck)

        assert state.active_artefacts == frozenset({ArtefactId.TOME})
        assert len(state.deck.all_runes) == 8
        assert state.deck.remaining_runes == ()

    def test_starting_armor(self) -> None:
        state, _ = seeded_controller().start_run(SoloRunConfig(starting_armor=5))
        assert state.player_stats.current_armor == 5

    def test_same_seed_same_run(self) -> None:
        first, _ = seeded_controller(9).start_run()
        second, _ = seeded_controller(9).start_run()
        assert first == second

    def test_next_game_only_after_victory(self) -> None:
        state = create_test_state()

        new_state, events = seeded_controller().start_next_game(state)

        assert new_state is state
        assert isinstance(events[0], ActionInvalidEvent)

    def test_next_game_carries_health_and_deck(self) -> None:
        controller = seeded_controller()
        state = create_test_state(score=30, health=60, armor=7)
        state, _ = controller.end_round(state)
        assert state.status == RunStatus.VICTORY

        state, _ = controller.pick_deck_draft(state, 1)
        next_state, events = controller.start_next_game(state)

        assert next_state.status == RunStatus.NOT_STARTED
        assert next_state.game_index == 1
        assert next_state.rune_score.target == 60
        assert next_state.overload_damage == 2
        assert next_state.player_stats.max_health == 125
        assert next_state.player_stats.current_health == 60
        assert next_state.player_stats.current_armor == 0
        assert len(next_state.deck.all_runes) == 100
        assert next_state.deck.overloaded_runes == ()
        assert isinstance(events[0], GameStartedEvent)


# =============================================================================
# Playing a Round
# =============================================================================


class TestPlayingRounds:
    """Tests for drafting and placing through the controller."""

    def test_draft_and_place_scores(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE, RuneType.FROST]])
        controller = seeded_controller()

        state, _ = controller.draft(state, FORGE_1, RuneType.FIRE)
        state, events = controller.place_runes(state, 0)

        resolved = next(e for e in events if isinstance(e, SegmentResolvedEvent))
        assert (resolved.row, resolved.col) == (0, 0)
        assert state.rune_score.current == 1
        assert state.pattern_lines[0].is_locked

    def test_round_ends_when_pools_run_dry(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE]])
        controller = seeded_controller()

        state, _ = controller.draft(state, FORGE_1, RuneType.FIRE)
        state, events = controller.place_runes(state, 0)

        assert any(isinstance(e, RoundEndedEvent) for e in events)
        assert state.round_index == 1
        assert not state.pattern_lines[0].is_locked
        assert sum(len(f.runes) for f in state.runeforges) == 20

    def test_floor_placement(self) -> None:
        state = create_test_state(runeforges=[[RuneType.VOID, RuneType.VOID, RuneType.FIRE]])
        controller = seeded_controller()

        state, _ = controller.draft(state, FORGE_1, RuneType.VOID)
        state, _ = controller.place_runes_in_floor(state)

        assert len(state.floor_line.runes) == 2
        assert state.selected_runes == ()
        assert state.draft_source is None

    def test_floor_placement_needs_selection(self) -> None:
        state = create_test_state(runeforges=[[RuneType.VOID]])

        new_state, events = seeded_controller().place_runes_in_floor(state)

        assert new_state == state
        assert events[0].kind == ErrorKind.INVALID_SELECTION

    def test_center_round_trip(self) -> None:
        """Forge, then center once every forge is empty."""
        state = create_test_state(runeforges=[[RuneType.FIRE, RuneType.FROST]])
        controller = seeded_controller()

        state, _ = controller.draft(state, FORGE_1, RuneType.FIRE)
        state, _ = controller.place_runes(state, 0)
        state, _ = controller.draft(state, CENTER_SOURCE_ID, RuneType.FROST)
        state, events = controller.place_runes(state, 1)

        assert state.pattern_lines[1].occupancy == 1
        assert any(isinstance(e, RoundEndedEvent) for e in events)

    def test_death_mid_round_is_defeat(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.FIRE] * 4, [RuneType.FROST]],
            floor_runes=[RuneType.VOID] * 7,
            health=3,
        )
        controller = seeded_controller()

        state, _ = controller.draft(state, FORGE_1, RuneType.FIRE)
        state, events = controller.place_runes_in_floor(state)

        assert state.status == RunStatus.DEFEAT
        assert isinstance(events[-1], DefeatEvent)

        after, events = controller.draft(state, SourceId("runeforge-2"), RuneType.FROST)
        assert after == state
        assert events[0].kind == ErrorKind.RUN_OVER

    def test_lethal_overflow_stops_line_resolution(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.LIFE] * 4, [RuneType.FROST]],
            floor_runes=[RuneType.VOID] * 7,
            health=1,
        )
        controller = seeded_controller()

        state, _ = controller.draft(state, FORGE_1, RuneType.LIFE)
        state, events = controller.place_runes(state, 2)

        assert state.status == RunStatus.DEFEAT
        assert state.player_stats.current_health == 0
        assert isinstance(events[-1], DefeatEvent)
        assert not any(isinstance(e, SegmentResolvedEvent) for e in events)
        assert not state.spell_wall.get_cell(2, state.spell_wall.column_for(2, RuneType.LIFE)).is_filled()


class TestArtefactScoring:
    """Artefacts applied to resolved segments."""

    def test_tome_multiplies_isolated_placement(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.FIRE, RuneType.FROST]],
            active_artefacts={ArtefactId.TOME},
        )
        controller = seeded_controller()

        state, _ = controller.draft(state, FORGE_1, RuneType.FIRE)
        state, events = controller.place_runes(state, 0)

        resolved = next(e for e in events if isinstance(e, SegmentResolvedEvent))
        assert resolved.segment.damage == 10
        assert state.rune_score.current == 10

    def test_potion_armor_and_rod_healing(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.FROST, RuneType.FIRE], [RuneType.LIFE]],
            pattern_lines=[[], [RuneType.LIFE]],
            health=50,
            active_artefacts={ArtefactId.POTION, ArtefactId.ROD},
        )
        controller = seeded_controller()

        state, _ = controller.draft(state, FORGE_1, RuneType.FROST)
        state, _ = controller.place_runes(state, 0)
        assert state.player_stats.current_armor == 2

        state, _ = controller.draft(state, SourceId("runeforge-2"), RuneType.LIFE)
        state, _ = controller.place_runes(state, 1)
        assert state.player_stats.current_health == 52
        assert state.rune_score.current == 4

    def test_healing_is_capped_at_max(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.LIFE, RuneType.FIRE]],
            health=99,
            active_artefacts={ArtefactId.TOME},
        )
        controller = seeded_controller()

        state, _ = controller.draft(state, FORGE_1, RuneType.LIFE)
        state, _ = controller.place_runes(state, 0)

        assert state.player_stats.current_health == 100


class TestConsistencyViolations:
    """Broken invariants abort the action."""

    def test_complete_line_on_partial_line(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE]], pattern_lines=[[], [RuneType.FIRE]])

        new_state, events = seeded_controller().complete_line(state, 1)

        assert new_state == state
        assert events[0].kind == ErrorKind.CONSISTENCY_VIOLATION

    def test_complete_line_on_occupied_cell(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.FIRE]],
            pattern_lines=[[RuneType.FIRE]],
            wall_runes=[(0, 0)],
        )

        new_state, events = seeded_controller().complete_line(state, 0)

        assert new_state == state
        assert events[0].kind == ErrorKind.CONSISTENCY_VIOLATION

    def test_complete_line_resolves_full_line(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE]], pattern_lines=[[], [RuneType.FROST] * 2])

        new_state, events = seeded_controller().complete_line(state, 1)

        assert isinstance(events[0], SegmentResolvedEvent)
        assert new_state.player_stats.current_armor == 1
        assert new_state.spell_wall.get_cell(1, 0).is_filled()


# =============================================================================
# Between Games
# =============================================================================


def won_state(controller: SoloRunController):
    state = create_test_state(
        score=30,
        deck_runes=[make_rune(RuneType.FIRE, "a"), make_rune(RuneType.WIND, "b")],
    )
    state, events = controller.end_round(state)
    assert any(isinstance(e, VictoryEvent) for e in events)
    return state


class TestBetweenGames:
    """Tests for deck drafting and disenchanting after a victory."""

    def test_pick_deck_draft(self) -> None:
        controller = seeded_controller()
        state = won_state(controller)
        offer = state.deck_draft.offers[2]

        new_state, events = controller.pick_deck_draft(state, 2)

        assert new_state.deck_draft is None
        assert new_state.deck.all_runes[-4:] == offer.runes
        assert isinstance(events[0], DeckDraftPickedEvent)

    def test_pick_without_draft(self) -> None:
        state = create_test_state()
        _, events = seeded_controller().pick_deck_draft(state, 0)
        assert events[0].kind == ErrorKind.INVALID_SELECTION

    def test_pick_bad_index(self) -> None:
        controller = seeded_controller()
        state = won_state(controller)

        new_state, events = controller.pick_deck_draft(state, 7)

        assert new_state == state
        assert isinstance(events[0], ActionInvalidEvent)

    def test_disenchant(self) -> None:
        controller = seeded_controller()
        state = won_state(controller)

        new_state, events = controller.disenchant(state, RuneId("a"))

        assert [r.id for r in new_state.deck.all_runes] == ["b"]
        assert new_state.arcane_dust_earned == 1
        assert events[0] == RuneDisenchantedEvent(rune_id=RuneId("a"), arcane_dust=1)

    def test_disenchant_keeps_last_rune(self) -> None:
        controller = seeded_controller()
        state, _ = controller.disenchant(won_state(controller), RuneId("a"))

        new_state, events = controller.disenchant(state, RuneId("b"))

        assert new_state == state
        assert events[0].kind == ErrorKind.INVALID_SELECTION

    def test_disenchant_unknown_rune(self) -> None:
        controller = seeded_controller()
        state = won_state(controller)

        _, events = controller.disenchant(state, RuneId("nope"))

        assert events[0].kind == ErrorKind.INVALID_SELECTION

    def test_disenchant_only_between_games(self) -> None:
        state = create_test_state(deck_runes=[make_rune(RuneType.FIRE, "a"), make_rune(RuneType.FIRE, "b")])

        new_state, events = seeded_controller().disenchant(state, RuneId("a"))

        assert new_state == state
        assert events[0].kind == ErrorKind.INVALID_SELECTION


# =============================================================================
# Hydration
# =============================================================================


class TestHydrateRun:
    """Tests for restoring saved runs."""

    def test_hydrate_from_state(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE]])
        restored, events = seeded_controller().hydrate_run(state)
        assert restored is state
        assert events == []

    def test_hydrate_from_dict(self) -> None:
        state, _ = seeded_controller().start_run()
        restored, _ = seeded_controller().hydrate_run(state_to_dict(state))
        assert restored == state

    def test_hydrate_corrupt_save(self) -> None:
        restored, events = seeded_controller().hydrate_run({"version": 1, "status": "in-progress"})

        assert restored is None
        assert events[0].kind == ErrorKind.CONSISTENCY_VIOLATION

    def test_hydrated_run_can_continue(self) -> None:
        controller = seeded_controller()
        state, _ = controller.start_run()
        restored, _ = controller.hydrate_run(state_to_dict(state))

        forge = restored.runeforges[0]
        new_state, events = controller.draft(restored, SourceId(forge.id), forge.runes[0].rune_type)

        assert new_state.status == RunStatus.IN_PROGRESS
        assert not isinstance(events[0], ActionInvalidEvent)
