"""
Tests for drafting from runeforges and the center pool.

Tests cover:
- Runeforge drafts move the remainder to the center
- Center access rules
- Cancelling restores the exact pre-draft state
- Rejected drafts
"""

from spellwall.types import RuneType, SourceId, ErrorKind, RunStatus, PlayerId, CENTER_SOURCE_ID
from spellwall.models import CenterDraftSource, RuneforgeDraftSource
from spellwall.drafting import draft_from_source, cancel_selection
from spellwall.rules import validate_draft, can_draft_from_center
from spellwall.events import RunesDraftedEvent, SelectionCancelledEvent, ActionInvalidEvent
from spellwall.controller import SoloRunController, create_test_state


PLAYER = PlayerId("player-1")
FORGE_1 = SourceId("runeforge-1")
FORGE_2 = SourceId("runeforge-2")


class TestDraftFromRuneforge:
    """Tests for taking runes from a runeforge."""

    def test_takes_all_of_type_and_moves_rest_to_center(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.FIRE, RuneType.FROST, RuneType.FIRE, RuneType.VOID]],
            center_pool=[RuneType.LIFE],
        )

        new_state, selected, source = draft_from_source(state, FORGE_1, RuneType.FIRE)

        assert [r.rune_type for r in selected] == [RuneType.FIRE, RuneType.FIRE]
        assert new_state.runeforges[0].runes == ()
        assert [r.rune_type for r in new_state.center_pool] == [RuneType.LIFE, RuneType.FROST, RuneType.VOID]
        assert isinstance(source, RuneforgeDraftSource)
        assert source.original_runes == state.runeforges[0].runes

    def test_controller_emits_drafted_event(self) -> None:
        state = create_test_state(runeforges=[[RuneType.WIND, RuneType.LIGHTNING]])

        new_state, events = SoloRunController().draft(state, FORGE_1, RuneType.WIND)

        assert len(new_state.selected_runes) == 1
        event = events[0]
        assert isinstance(event, RunesDraftedEvent)
        assert event.source_id == FORGE_1
        assert len(event.moved_to_center) == 1

    def test_first_action_starts_the_game(self) -> None:
        state = create_test_state(runeforges=[[RuneType.WIND]], status=RunStatus.NOT_STARTED)

        new_state, _ = SoloRunController().draft(state, FORGE_1, RuneType.WIND)

        assert new_state.status == RunStatus.IN_PROGRESS


class TestCenterAccess:
    """Tests for when the center pool can be drafted from."""

    def test_unavailable_while_a_forge_has_runes(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.FIRE], []],
            center_pool=[RuneType.FROST],
        )

        result = validate_draft(state, CENTER_SOURCE_ID, RuneType.FROST, PLAYER)

        assert not result.valid
        assert result.kind == ErrorKind.SOURCE_UNAVAILABLE

    def test_available_when_forges_are_empty(self) -> None:
        state = create_test_state(runeforges=[[], []], center_pool=[RuneType.FROST, RuneType.FIRE])

        assert can_draft_from_center(state, PLAYER)
        new_state, events = SoloRunController().draft(state, CENTER_SOURCE_ID, RuneType.FROST)

        assert [r.rune_type for r in new_state.selected_runes] == [RuneType.FROST]
        assert [r.rune_type for r in new_state.center_pool] == [RuneType.FIRE]
        assert isinstance(new_state.draft_source, CenterDraftSource)

    def test_available_when_remaining_forges_are_disabled(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE]], center_pool=[RuneType.FROST])
        state = state.with_runeforge(state.runeforges[0].with_disabled(True))

        assert validate_draft(state, CENTER_SOURCE_ID, RuneType.FROST, PLAYER).valid

    def test_type_missing_from_center(self) -> None:
        state = create_test_state(center_pool=[RuneType.FROST])

        result = validate_draft(state, CENTER_SOURCE_ID, RuneType.FIRE, PLAYER)

        assert not result.valid
        assert result.kind == ErrorKind.INVALID_SELECTION


class TestCancelSelection:
    """Cancelling a selection restores the pre-draft state."""

    def test_cancel_runeforge_draft(self) -> None:
        state = create_test_state(
            runeforges=[[RuneType.FIRE, RuneType.FROST, RuneType.FIRE, RuneType.VOID], [RuneType.LIFE]],
            center_pool=[RuneType.WIND],
        )

        drafted, _, _ = draft_from_source(state, FORGE_1, RuneType.FIRE)
        restored = cancel_selection(drafted)

        assert restored == state

    def test_cancel_center_draft(self) -> None:
        state = create_test_state(
            runeforges=[[]],
            center_pool=[RuneType.WIND, RuneType.FIRE, RuneType.WIND],
        )

        drafted, _, _ = draft_from_source(state, CENTER_SOURCE_ID, RuneType.WIND)
        restored = cancel_selection(drafted)

        assert restored == state
        assert [r.rune_type for r in restored.center_pool] == [RuneType.WIND, RuneType.FIRE, RuneType.WIND]

    def test_cancel_through_controller(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE, RuneType.FROST]])
        controller = SoloRunController()

        drafted, _ = controller.draft(state, FORGE_1, RuneType.FIRE)
        restored, events = controller.cancel_selection(drafted)

        assert restored.runeforges == state.runeforges
        assert restored.center_pool == ()
        assert restored.selected_runes == ()
        assert isinstance(events[0], SelectionCancelledEvent)
        assert events[0].source_id == FORGE_1

    def test_cancel_without_selection_is_noop(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE]])

        new_state, events = SoloRunController().cancel_selection(state)

        assert new_state is state
        assert events == []


class TestRejectedDrafts:
    """Drafts that must leave the state untouched."""

    def test_selection_already_in_flight(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE], [RuneType.FROST]])
        controller = SoloRunController()

        drafted, _ = controller.draft(state, FORGE_1, RuneType.FIRE)
        new_state, events = controller.draft(drafted, FORGE_2, RuneType.FROST)

        assert new_state == drafted
        assert isinstance(events[0], ActionInvalidEvent)
        assert events[0].kind == ErrorKind.INVALID_SELECTION

    def test_type_not_in_runeforge(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE]])

        new_state, events = SoloRunController().draft(state, FORGE_1, RuneType.LIGHTNING)

        assert new_state == state
        assert events[0].kind == ErrorKind.INVALID_SELECTION

    def test_unknown_source(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE]])

        result = validate_draft(state, SourceId("runeforge-9"), RuneType.FIRE, PLAYER)

        assert not result.valid

    def test_disabled_runeforge(self) -> None:
        state = create_test_state(runeforges=[[RuneType.FIRE]])
        state = state.with_runeforge(state.runeforges[0].with_disabled(True))

        assert not validate_draft(state, FORGE_1, RuneType.FIRE, PLAYER).valid

    def test_run_over(self) -> None:
        for status in (RunStatus.VICTORY, RunStatus.DEFEAT):
            state = create_test_state(runeforges=[[RuneType.FIRE]], status=status)

            new_state, events = SoloRunController().draft(state, FORGE_1, RuneType.FIRE)

            assert new_state == state
            assert events[0].kind == ErrorKind.RUN_OVER
