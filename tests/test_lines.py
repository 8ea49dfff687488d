"""
Tests for pattern line and floor line placement.

Tests cover:
- Pattern line overflow to the floor
- Floor overflow to overload
- Rune conservation across a placement
- Automatic line choice
- Placement validation
"""

from spellwall.types import RuneType, ErrorKind, SourceId
from spellwall.models import PatternLine, FloorLine
from spellwall.lines import assign_to_pattern_line, place_in_floor, find_best_pattern_line
from spellwall.rules import validate_pattern_line_placement
from spellwall.controller import SoloRunController, create_test_state, make_rune
from spellwall.events import RunesPlacedEvent, RunesToFloorEvent, OverloadEvent, SegmentResolvedEvent


def fire_runes(count: int, prefix: str = "f") -> tuple:
    return tuple(make_rune(RuneType.FIRE, f"{prefix}{i}") for i in range(count))


# =============================================================================
# Pattern Lines
# =============================================================================


class TestAssignToPatternLine:
    """Tests for adding runes to a pattern line."""

    def test_fits_exactly(self) -> None:
        line, overflow = assign_to_pattern_line(PatternLine(capacity=3), fire_runes(3))

        assert line.is_complete()
        assert overflow == ()

    def test_excess_overflows_in_draft_order(self) -> None:
        runes = fire_runes(3)

        line, overflow = assign_to_pattern_line(PatternLine(capacity=2), runes)

        assert line.runes == runes[:2]
        assert overflow == (runes[2],)

    def test_partially_filled_line(self) -> None:
        existing = fire_runes(2, "old")
        incoming = fire_runes(3)

        line, overflow = assign_to_pattern_line(PatternLine(capacity=4, runes=existing), incoming)

        assert line.runes == existing + incoming[:2]
        assert overflow == incoming[2:]


# =============================================================================
# Floor Line
# =============================================================================


class TestPlaceInFloor:
    """Tests for floor capacity and overload."""

    def test_fits(self) -> None:
        floor, overload = place_in_floor(FloorLine(max_capacity=3), fire_runes(2))

        assert len(floor.runes) == 2
        assert overload == ()

    def test_excess_overloads(self) -> None:
        existing = fire_runes(1, "old")
        incoming = fire_runes(2)

        floor, overload = place_in_floor(FloorLine(max_capacity=2, runes=existing), incoming)

        assert floor.runes == existing + incoming[:1]
        assert overload == incoming[1:]
        assert floor.is_full()

    def test_full_floor_is_not_an_error(self) -> None:
        incoming = fire_runes(3)

        floor, overload = place_in_floor(FloorLine(max_capacity=2, runes=fire_runes(2, "old")), incoming)

        assert len(floor.runes) == 2
        assert overload == incoming


class TestPlacementFlow:
    """Placing a selection through the controller."""

    def test_three_fire_into_capacity_two(self) -> None:
        """Two runes land, the line resolves, the third goes to the floor."""
        state = create_test_state(runeforges=[[RuneType.FIRE, RuneType.FIRE, RuneType.FIRE, RuneType.FROST]])
        controller = SoloRunController()

        state, _ = controller.draft(state, SourceId("runeforge-1"), RuneType.FIRE)
        new_state, events = controller.place_runes(state, 1)

        assert len(new_state.floor_line.runes) == 1
        assert new_state.pattern_lines[1].is_locked
        assert new_state.spell_wall.get_cell(1, 1).is_filled()
        assert new_state.rune_score.current == 1
        assert new_state.selected_runes == ()

        placed = next(e for e in events if isinstance(e, RunesPlacedEvent))
        assert len(placed.rune_ids) == 2
        assert any(isinstance(e, RunesToFloorEvent) for e in events)
        assert any(isinstance(e, SegmentResolvedEvent) for e in events)

    def test_overflow_past_floor_overloads(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.FIRE, RuneType.FIRE, RuneType.FIRE, RuneType.FROST]],
            floor_runes=[RuneType.VOID] * 7,
            overload_damage=5,
        )
        controller = SoloRunController()

        state, _ = controller.draft(state, SourceId("runeforge-1"), RuneType.FIRE)
        new_state, events = controller.place_runes(state, 0)

        overload = next(e for e in events if isinstance(e, OverloadEvent))
        assert len(overload.rune_ids) == 2
        assert new_state.player_stats.current_health == 90
        assert len(new_state.deck.overloaded_runes) == 2

    def test_runes_are_conserved(self) -> None:
        """Each selected rune is placed, floored or overloaded exactly once."""
        state = create_test_state(
            runeforges=[[RuneType.LIFE] * 4],
            center_pool=[RuneType.VOID],
            pattern_lines=[[], [], [RuneType.LIFE]],
            floor_runes=[RuneType.WIND] * 6,
        )
        controller = SoloRunController()

        state, _ = controller.draft(state, SourceId("runeforge-1"), RuneType.LIFE)
        selected_ids = [r.id for r in state.selected_runes]
        new_state, events = controller.place_runes(state, 2)

        placed = next(e for e in events if isinstance(e, RunesPlacedEvent)).rune_ids
        floored = next(e for e in events if isinstance(e, RunesToFloorEvent)).rune_ids
        overloaded = next(e for e in events if isinstance(e, OverloadEvent)).rune_ids

        assert (len(placed), len(floored), len(overloaded)) == (2, 1, 1)
        assert sorted([*placed, *floored, *overloaded]) == sorted(selected_ids)
        assert len(new_state.floor_line.runes) == 7


# =============================================================================
# Automatic Line Choice
# =============================================================================


class TestFindBestPatternLine:
    """Tests for picking a line for a selection."""

    def test_prefers_line_already_holding_type(self) -> None:
        state = create_test_state(pattern_lines=[[], [], [], [RuneType.FIRE]])
        assert find_best_pattern_line(fire_runes(2), state.pattern_lines, state.spell_wall) == 3

    def test_falls_back_to_exact_capacity(self) -> None:
        state = create_test_state()
        assert find_best_pattern_line(fire_runes(2), state.pattern_lines, state.spell_wall) == 1

    def test_skips_rows_with_type_on_wall(self) -> None:
        state = create_test_state(wall_runes=[(1, 1)])
        assert find_best_pattern_line(fire_runes(2), state.pattern_lines, state.spell_wall) is None

    def test_no_match(self) -> None:
        state = create_test_state()
        assert find_best_pattern_line(fire_runes(7), state.pattern_lines, state.spell_wall) is None
        assert find_best_pattern_line((), state.pattern_lines, state.spell_wall) is None


# =============================================================================
# Validation
# =============================================================================


class TestValidatePatternLinePlacement:
    """Tests for placement legality."""

    def test_valid_on_empty_line(self) -> None:
        state = create_test_state()
        result = validate_pattern_line_placement(2, fire_runes(2), state.pattern_lines, state.spell_wall)
        assert result.valid

    def test_no_selection(self) -> None:
        state = create_test_state()
        result = validate_pattern_line_placement(0, (), state.pattern_lines, state.spell_wall)
        assert not result.valid
        assert result.kind == ErrorKind.INVALID_SELECTION

    def test_mixed_types(self) -> None:
        state = create_test_state()
        runes = (make_rune(RuneType.FIRE, "f"), make_rune(RuneType.FROST, "i"))
        result = validate_pattern_line_placement(2, runes, state.pattern_lines, state.spell_wall)
        assert not result.valid

    def test_line_out_of_range(self) -> None:
        state = create_test_state()
        for index in (-1, 6):
            result = validate_pattern_line_placement(index, fire_runes(1), state.pattern_lines, state.spell_wall)
            assert not result.valid

    def test_locked_line(self) -> None:
        state = create_test_state()
        state = state.with_pattern_line(2, state.pattern_lines[2].cleared_and_locked())
        result = validate_pattern_line_placement(2, fire_runes(1), state.pattern_lines, state.spell_wall)
        assert not result.valid
        assert "locked" in result.reason

    def test_different_type_on_line(self) -> None:
        state = create_test_state(pattern_lines=[[], [], [RuneType.FROST]])
        result = validate_pattern_line_placement(2, fire_runes(1), state.pattern_lines, state.spell_wall)
        assert not result.valid

    def test_full_line(self) -> None:
        state = create_test_state(pattern_lines=[[], [RuneType.FIRE, RuneType.FIRE]])
        result = validate_pattern_line_placement(1, fire_runes(1), state.pattern_lines, state.spell_wall)
        assert not result.valid
        assert "full" in result.reason

    def test_type_already_on_wall_row(self) -> None:
        state = create_test_state(wall_runes=[(2, 2)])
        result = validate_pattern_line_placement(2, fire_runes(1), state.pattern_lines, state.spell_wall)
        assert not result.valid

    def test_rejected_placement_leaves_state_unchanged(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.FIRE, RuneType.FROST]],
            pattern_lines=[[], [], [RuneType.FROST]],
        )
        controller = SoloRunController()
        state, _ = controller.draft(state, SourceId("runeforge-1"), RuneType.FIRE)

        new_state, events = controller.place_runes(state, 2)

        assert new_state == state
        assert events[0].kind == ErrorKind.INVALID_SELECTION
