"""
Solo Run Controller - orchestrates a run and exposes the engine API.

The controller manages the run lifecycle without any I/O operations.
It provides a clean interface for:
- Starting runs and games
- Drafting and placing runes
- Ending rounds and resolving the wall
- Post-victory deck drafting and disenchanting
- Buying and selecting artefacts

All operations return new state snapshots and event logs. Rejected actions
return the state unchanged with an ActionInvalidEvent.
"""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import Any, AbstractSet, Sequence

from spellwall.types import (
    RuneId,
    RuneforgeId,
    PlayerId,
    SourceId,
    RuneType,
    Rarity,
    RunStatus,
    ArtefactId,
    ErrorKind,
)
from spellwall.config import SoloRunConfig, DEFAULT_CONFIG
from spellwall.models import (
    Rune,
    Runeforge,
    PatternLine,
    FloorLine,
    PlayerStats,
    RuneScore,
    Deck,
    RuneforgeDraftSource,
    SoloRunState,
)
from spellwall.effects import get_base_effects, get_draft_effects
from spellwall.events import (
    GameEvent,
    RunesDraftedEvent,
    SelectionCancelledEvent,
    RunesPlacedEvent,
    RunesToFloorEvent,
    SegmentResolvedEvent,
    DeckDraftPickedEvent,
    RuneDisenchantedEvent,
    DefeatEvent,
    ActionInvalidEvent,
)
from spellwall.rules import (
    ValidationResult,
    ConsistencyViolation,
    validate_run_active,
    validate_draft,
    validate_pattern_line_placement,
    invalid,
    status_after_action,
)
from spellwall.drafting import draft_from_source, cancel_selection, source_id_of
from spellwall.lines import assign_to_pattern_line, place_in_floor
from spellwall.wall import resolve_placement, create_spell_wall
from spellwall.artefacts import apply_segment_modifiers
from spellwall.deck import create_starting_deck, pick_deck_draft_offer, disenchant_rune
from spellwall.progression import (
    next_game,
    end_round,
    apply_overload,
    apply_resolved_segment,
)
from spellwall.serialization import state_from_dict
from spellwall.collection import (
    ArtefactCollection,
    buy_artefact,
    select_artefact,
    unselect_artefact,
)

logger = logging.getLogger(__name__)


def _rejected(state: Any, validation: ValidationResult) -> tuple[Any, list[GameEvent]]:
    logger.warning(f"Rejected action: {validation.reason}")
    return state, [ActionInvalidEvent(kind=validation.kind, reason=validation.reason)]


class SoloRunController:
    """
    Orchestrates a solo run and provides APIs for run interaction.

    The controller holds configuration and a random source but no run
    state - all state is passed in and returned. This makes it easy to:
    - Test with specific states
    - Persist after every transition
    - Replay runs from a seed

    Usage:
        controller = SoloRunController(rng=random.Random(7))
        state, events = controller.start_run()
        state, events = controller.draft(state, SourceId("runeforge-1"), RuneType.FIRE)
        state, events = controller.place_runes(state, 0)
    """

    def __init__(self, config: SoloRunConfig = DEFAULT_CONFIG, rng: random.Random | None = None):
        self.config = config
        self.rng = rng or random.Random()

    # =========================================================================
    # Run Lifecycle
    # =========================================================================

    def start_run(
        self,
        config: SoloRunConfig | None = None,
        active_artefacts: AbstractSet[ArtefactId] = frozenset(),
        deck: Sequence[Rune] | None = None,
    ) -> tuple[SoloRunState, list[GameEvent]]:
        """
        Start a new run at game 0.

        Args:
            config: Replaces the controller's config for this and later calls
            active_artefacts: Artefacts selected for the run
            deck: Starting deck (uses the default deck if None)
        """
        if config is not None:
            self.config = config
        cfg = self.config

        full_deck = tuple(deck) if deck is not None else create_starting_deck(cfg)
        stats = PlayerStats(current_health=cfg.starting_health, max_health=cfg.starting_health)
        state, events = next_game(0, stats, active_artefacts, full_deck, cfg, self.rng)
        if cfg.starting_armor:
            state = state.with_stats(state.player_stats.with_armor(cfg.starting_armor))

        logger.debug(f"Started run with {len(full_deck)} runes and artefacts {sorted(a.value for a in active_artefacts)}")
        return state, events

    def start_next_game(self, state: SoloRunState) -> tuple[SoloRunState, list[GameEvent]]:
        """After a victory, deal the next game with the upgraded deck."""
        if state.status != RunStatus.VICTORY:
            return _rejected(state, invalid(ErrorKind.INVALID_SELECTION, "Next game is only available after a victory"))

        new_state, events = next_game(
            state.game_index + 1,
            state.player_stats,
            state.active_artefacts,
            state.deck.all_runes,
            self.config,
            self.rng,
            arcane_dust_earned=state.arcane_dust_earned,
        )
        logger.debug(f"Advanced to game {new_state.game_index}")
        return new_state, events

    def hydrate_run(self, saved: SoloRunState | dict[str, Any]) -> tuple[SoloRunState | None, list[GameEvent]]:
        """Restore a saved run. A save that cannot be read yields None."""
        if isinstance(saved, SoloRunState):
            return saved, []
        try:
            return state_from_dict(saved), []
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Cannot hydrate saved run: {e}")
            return None, [ActionInvalidEvent(kind=ErrorKind.CONSISTENCY_VIOLATION, reason=f"Corrupt save: {e}")]

    # =========================================================================
    # Drafting
    # =========================================================================

    def draft(
        self,
        state: SoloRunState,
        source_id: SourceId,
        rune_type: RuneType,
    ) -> tuple[SoloRunState, list[GameEvent]]:
        """Take every rune of `rune_type` from a runeforge or the center pool."""
        validation = validate_draft(state, source_id, rune_type, self.config.player_id)
        if not validation.valid:
            return _rejected(state, validation)

        new_state, selected, source = draft_from_source(state, source_id, rune_type)
        moved = source.moved_to_center if isinstance(source, RuneforgeDraftSource) else ()
        events: list[GameEvent] = [
            RunesDraftedEvent(
                source_id=source_id,
                rune_type=rune_type,
                rune_ids=tuple(r.id for r in selected),
                moved_to_center=tuple(r.id for r in moved),
            )
        ]
        return self._after_action(new_state, events)

    def cancel_selection(self, state: SoloRunState) -> tuple[SoloRunState, list[GameEvent]]:
        if state.draft_source is None:
            return state, []
        source_id = source_id_of(state.draft_source)
        return cancel_selection(state), [SelectionCancelledEvent(source_id=source_id)]

    # =========================================================================
    # Placement
    # =========================================================================

    def place_runes(self, state: SoloRunState, line_index: int) -> tuple[SoloRunState, list[GameEvent]]:
        """
        Place the selection on a pattern line.

        Runes that do not fit go to the floor; runes the floor cannot hold
        overload. A line that fills up resolves onto the wall right away.
        """
        active = validate_run_active(state)
        if not active.valid:
            return _rejected(state, active)

        runes = state.selected_runes
        validation = validate_pattern_line_placement(line_index, runes, state.pattern_lines, state.spell_wall)
        if not validation.valid:
            return _rejected(state, validation)

        line, overflow = assign_to_pattern_line(state.pattern_lines[line_index], runes)
        placed = runes[:len(runes) - len(overflow)]
        new_state = replace(
            state.with_pattern_line(line_index, line),
            selected_runes=(),
            draft_source=None,
        )
        events: list[GameEvent] = [RunesPlacedEvent(line_index=line_index, rune_ids=tuple(r.id for r in placed))]

        new_state, floor_events = self._send_to_floor(new_state, overflow)
        events.extend(floor_events)

        if new_state.player_stats.is_dead():
            return self._after_action(new_state, events)

        if line.is_complete():
            try:
                new_state, resolve_events = self._resolve_line(new_state, line_index)
            except ConsistencyViolation as e:
                return self._consistency_failure(state, e)
            events.extend(resolve_events)

        return self._after_action(new_state, events)

    def place_runes_in_floor(self, state: SoloRunState) -> tuple[SoloRunState, list[GameEvent]]:
        """Dump the selection on the floor line."""
        active = validate_run_active(state)
        if not active.valid:
            return _rejected(state, active)
        if not state.selected_runes:
            return _rejected(state, invalid(ErrorKind.INVALID_SELECTION, "No runes selected"))

        new_state = replace(state, selected_runes=(), draft_source=None)
        new_state, events = self._send_to_floor(new_state, state.selected_runes)
        return self._after_action(new_state, events)

    def complete_line(self, state: SoloRunState, line_index: int) -> tuple[SoloRunState, list[GameEvent]]:
        """Resolve a full pattern line onto the wall."""
        active = validate_run_active(state)
        if not active.valid:
            return _rejected(state, active)
        try:
            new_state, events = self._resolve_line(state, line_index)
        except ConsistencyViolation as e:
            return self._consistency_failure(state, e)
        return self._after_action(new_state, events)

    def end_round(self, state: SoloRunState) -> tuple[SoloRunState, list[GameEvent]]:
        active = validate_run_active(state)
        if not active.valid:
            return _rejected(state, active)

        new_state, events = end_round(state, self.config, self.rng)
        if new_state.status == RunStatus.NOT_STARTED:
            new_state = new_state.with_status(RunStatus.IN_PROGRESS)
        logger.debug(
            f"Round {state.round_index} ended: health={new_state.player_stats.current_health} "
            f"score={new_state.rune_score.current}/{new_state.rune_score.target} status={new_state.status.value}"
        )
        return new_state, events

    # =========================================================================
    # Between Games
    # =========================================================================

    def pick_deck_draft(self, state: SoloRunState, offer_index: int) -> tuple[SoloRunState, list[GameEvent]]:
        """Take a post-victory deck draft offer."""
        draft = state.deck_draft
        if draft is None:
            return _rejected(state, invalid(ErrorKind.INVALID_SELECTION, "No deck draft in progress"))
        if not 0 <= offer_index < len(draft.offers):
            return _rejected(state, invalid(ErrorKind.INVALID_SELECTION, f"No deck draft offer {offer_index}"))

        offer = draft.offers[offer_index]
        new_draft, deck, stats = pick_deck_draft_offer(
            draft,
            offer_index,
            state.deck,
            state.player_stats,
            self.config.player_id,
            state.game_index,
            state.active_artefacts,
            self.rng,
            self.config,
        )
        new_state = replace(state, deck_draft=new_draft, deck=deck, player_stats=stats)
        return new_state, [DeckDraftPickedEvent(offer_index=offer_index, rune_ids=tuple(r.id for r in offer.runes))]

    def disenchant(self, state: SoloRunState, rune_id: RuneId) -> tuple[SoloRunState, list[GameEvent]]:
        """Remove a rune from the deck for arcane dust. Only between games."""
        if state.status != RunStatus.VICTORY:
            return _rejected(state, invalid(ErrorKind.INVALID_SELECTION, "Runes can only be disenchanted between games"))
        try:
            deck, dust = disenchant_rune(state.deck, rune_id)
        except KeyError:
            return _rejected(state, invalid(ErrorKind.INVALID_SELECTION, f"Rune {rune_id} is not in the deck"))
        except ValueError as e:
            return _rejected(state, invalid(ErrorKind.INVALID_SELECTION, str(e)))

        new_state = replace(state, deck=deck, arcane_dust_earned=state.arcane_dust_earned + dust)
        return new_state, [RuneDisenchantedEvent(rune_id=rune_id, arcane_dust=dust)]

    # =========================================================================
    # Artefact Collection
    # =========================================================================

    def buy_artefact(
        self, collection: ArtefactCollection, artefact_id: ArtefactId
    ) -> tuple[ArtefactCollection, list[GameEvent]]:
        return buy_artefact(collection, artefact_id)

    def select_artefact(
        self, collection: ArtefactCollection, artefact_id: ArtefactId
    ) -> tuple[ArtefactCollection, list[GameEvent]]:
        return select_artefact(collection, artefact_id)

    def unselect_artefact(
        self, collection: ArtefactCollection, artefact_id: ArtefactId
    ) -> tuple[ArtefactCollection, list[GameEvent]]:
        return unselect_artefact(collection, artefact_id)

    # =========================================================================
    # Internals
    # =========================================================================

    def _send_to_floor(
        self, state: SoloRunState, runes: Sequence[Rune]
    ) -> tuple[SoloRunState, list[GameEvent]]:
        if not runes:
            return state, []
        floor, overload = place_in_floor(state.floor_line, runes)
        accepted = runes[:len(runes) - len(overload)]
        new_state = replace(state, floor_line=floor)
        events: list[GameEvent] = []
        if accepted:
            events.append(RunesToFloorEvent(rune_ids=tuple(r.id for r in accepted)))
        new_state, overload_events = apply_overload(new_state, overload)
        events.extend(overload_events)
        return new_state, events

    def _resolve_line(self, state: SoloRunState, line_index: int) -> tuple[SoloRunState, list[GameEvent]]:
        new_state, segment = resolve_placement(state, line_index, self.config.segment_connectivity)
        segment = apply_segment_modifiers(segment, state.active_artefacts)
        new_state = apply_resolved_segment(new_state, segment)
        row, col = segment.ordered_cells[0]
        return new_state, [SegmentResolvedEvent(line_index=line_index, row=row, col=col, segment=segment)]

    def _consistency_failure(
        self, state: SoloRunState, error: ConsistencyViolation
    ) -> tuple[SoloRunState, list[GameEvent]]:
        logger.error(f"Consistency violation, action aborted: {error}")
        return state, [ActionInvalidEvent(kind=ErrorKind.CONSISTENCY_VIOLATION, reason=str(error))]

    def _after_action(
        self, state: SoloRunState, events: list[GameEvent]
    ) -> tuple[SoloRunState, list[GameEvent]]:
        """Mark the game in progress, check for defeat and end the round once the pools run dry."""
        state = state.with_status(status_after_action(state))
        if state.status == RunStatus.DEFEAT:
            events.append(DefeatEvent(game_index=state.game_index, reason="Health reached zero"))
            return state, events

        if state.pools_empty() and not state.selected_runes and state.draft_source is None:
            state, round_events = self.end_round(state)
            events.extend(round_events)

        return state, events


# =============================================================================
# Test Helpers
# =============================================================================


def make_rune(
    rune_type: RuneType,
    rune_id: str | None = None,
    rarity: Rarity = Rarity.COMMON,
) -> Rune:
    """Create a rune with the effects its type and rarity normally carry."""
    effects = get_base_effects(rune_type) if rarity == Rarity.COMMON else get_draft_effects(rune_type, rarity)
    return Rune(
        id=RuneId(rune_id or f"{rune_type.value}-test-{random.randrange(1 << 30)}"),
        rune_type=rune_type,
        rarity=rarity,
        effects=effects,
    )


def create_test_state(
    runeforges: Sequence[Sequence[RuneType]] = (),
    center_pool: Sequence[RuneType] = (),
    pattern_lines: Sequence[Sequence[RuneType]] | None = None,
    wall_runes: Sequence[tuple[int, int]] = (),
    floor_runes: Sequence[RuneType] = (),
    health: int = 100,
    max_health: int = 100,
    armor: int = 0,
    score: int = 0,
    target: int = 30,
    overload_damage: int = 1,
    active_artefacts: AbstractSet[ArtefactId] = frozenset(),
    deck_runes: Sequence[Rune] | None = None,
    status: RunStatus = RunStatus.IN_PROGRESS,
    config: SoloRunConfig = DEFAULT_CONFIG,
) -> SoloRunState:
    """
    Create a run state for testing.

    Args:
        runeforges: Rune types in each runeforge
        center_pool: Rune types in the center pool
        pattern_lines: Rune types already on each pattern line
        wall_runes: (row, col) cells to fill with a rune of the cell's type
        floor_runes: Rune types on the floor line
        deck_runes: Undrawn runes (defaults to the starting deck)

    Returns:
        SoloRunState ready for testing
    """
    counter = 0

    def new_rune(rune_type: RuneType) -> Rune:
        nonlocal counter
        counter += 1
        return make_rune(rune_type, f"{rune_type.value}-t{counter}")

    forges = tuple(
        Runeforge(
            id=RuneforgeId(f"runeforge-{i + 1}"),
            owner_id=PlayerId(config.player_id),
            runes=tuple(new_rune(t) for t in types),
            capacity=config.runeforge_capacity,
        )
        for i, types in enumerate(runeforges)
    )

    lines = tuple(PatternLine(capacity=i + 1) for i in range(config.wall_size))
    if pattern_lines is not None:
        lines = tuple(
            line.with_runes(tuple(new_rune(t) for t in pattern_lines[i])) if i < len(pattern_lines) else line
            for i, line in enumerate(lines)
        )

    wall = create_spell_wall(config.wall_size)
    for row, col in wall_runes:
        wall = wall.with_rune(row, col, new_rune(wall.get_cell(row, col).rune_type))

    remaining = tuple(deck_runes) if deck_runes is not None else create_starting_deck(config)

    return SoloRunState(
        status=status,
        game_index=0,
        round_index=0,
        player_stats=PlayerStats(current_health=health, max_health=max_health, current_armor=armor),
        rune_score=RuneScore(current=score, target=target),
        overload_damage=overload_damage,
        active_artefacts=frozenset(active_artefacts),
        deck=Deck(remaining_runes=remaining, all_runes=remaining),
        runeforges=forges,
        center_pool=tuple(new_rune(t) for t in center_pool),
        pattern_lines=lines,
        floor_line=FloorLine(
            max_capacity=config.floor_capacity,
            runes=tuple(new_rune(t) for t in floor_runes),
        ),
        spell_wall=wall,
    )
