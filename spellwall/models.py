"""
Data models for the rune engine.

All models use frozen dataclasses for immutability.
State transitions create new objects rather than mutating existing ones.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

from spellwall.types import (
    RuneId,
    RuneforgeId,
    PlayerId,
    RuneType,
    Rarity,
    RunStatus,
    ArtefactId,
)
from spellwall.effects import RuneEffect
from spellwall.config import DeckDraftEffect


# =============================================================================
# Runes
# =============================================================================


@dataclass(frozen=True, slots=True)
class Rune:
    """
    A single rune. Runes never change; they only move between containers.
    """

    id: RuneId
    """Unique ID, stable for the run."""

    rune_type: RuneType
    """Elemental identity."""

    rarity: Rarity = Rarity.COMMON
    """Rarity tier the effects were scaled by."""

    effects: tuple[RuneEffect, ...] = ()
    """Effects applied when the rune is part of a resolved segment."""


def rune_ids(runes: Sequence[Rune]) -> frozenset[RuneId]:
    """Set of ids for quick membership checks."""
    return frozenset(rune.id for rune in runes)


# =============================================================================
# Drafting Pools
# =============================================================================


@dataclass(frozen=True, slots=True)
class Runeforge:
    """A bounded pool of runes that the owner drafts from."""

    id: RuneforgeId

    owner_id: PlayerId

    runes: tuple[Rune, ...]

    capacity: int

    disabled: bool = False
    """Disabled runeforges cannot be drafted from."""

    def is_accessible(self) -> bool:
        """Whether the forge can currently be drafted from."""
        return not self.disabled and len(self.runes) > 0

    def has_rune_type(self, rune_type: RuneType) -> bool:
        return any(rune.rune_type == rune_type for rune in self.runes)

    def with_runes(self, runes: Sequence[Rune]) -> Runeforge:
        """Return a new forge holding `runes`."""
        return replace(self, runes=tuple(runes))

    def with_disabled(self, disabled: bool) -> Runeforge:
        return replace(self, disabled=disabled)


@dataclass(frozen=True, slots=True)
class RuneforgeDraftSource:
    """Selection came from a runeforge."""

    runeforge_id: RuneforgeId

    original_runes: tuple[Rune, ...]
    """The forge's runes, in order, before the draft."""

    moved_to_center: tuple[Rune, ...]
    """Remainder runes pushed to the center pool by the draft."""


@dataclass(frozen=True, slots=True)
class CenterDraftSource:
    """Selection came from the center pool."""

    original_runes: tuple[Rune, ...]
    """The center pool, in order, before the draft."""


DraftSource = RuneforgeDraftSource | CenterDraftSource


# =============================================================================
# Lines
# =============================================================================


@dataclass(frozen=True, slots=True)
class PatternLine:
    """
    A capacity-limited staging row. All runes in a line share a type.
    """

    capacity: int

    runes: tuple[Rune, ...] = ()

    is_locked: bool = False
    """Set once the line completes; cleared at round end."""

    @property
    def occupancy(self) -> int:
        return len(self.runes)

    @property
    def rune_type(self) -> RuneType | None:
        """Committed type for the current occupancy, None when empty."""
        return self.runes[0].rune_type if self.runes else None

    @property
    def free_space(self) -> int:
        return self.capacity - len(self.runes)

    def is_complete(self) -> bool:
        return len(self.runes) == self.capacity

    def with_runes(self, runes: Sequence[Rune]) -> PatternLine:
        return replace(self, runes=tuple(runes))

    def cleared_and_locked(self) -> PatternLine:
        """Occupancy reset to zero, locked for the rest of the round."""
        return replace(self, runes=(), is_locked=True)

    def unlocked(self) -> PatternLine:
        return replace(self, is_locked=False)


@dataclass(frozen=True, slots=True)
class FloorLine:
    """Penalty buffer for runes that do not fit a pattern line."""

    max_capacity: int

    runes: tuple[Rune, ...] = ()

    @property
    def free_space(self) -> int:
        return max(0, self.max_capacity - len(self.runes))

    def is_full(self) -> bool:
        return len(self.runes) >= self.max_capacity

    def with_runes(self, runes: Sequence[Rune]) -> FloorLine:
        return replace(self, runes=tuple(runes))


# =============================================================================
# Spell Wall
# =============================================================================


@dataclass(frozen=True, slots=True)
class WallCell:
    """One wall slot with its fixed rune type."""

    rune_type: RuneType

    rune: Rune | None = None

    def is_filled(self) -> bool:
        return self.rune is not None


@dataclass(frozen=True, slots=True)
class SpellWall:
    """
    Square grid of wall cells, stored row-major in a flat tuple.
    """

    size: int

    cells: tuple[WallCell, ...]

    def index(self, row: int, col: int) -> int:
        return row * self.size + col

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.size and 0 <= col < self.size

    def get_cell(self, row: int, col: int) -> WallCell:
        return self.cells[self.index(row, col)]

    def column_for(self, row: int, rune_type: RuneType) -> int:
        """The unique column in `row` assigned to `rune_type`."""
        for col in range(self.size):
            if self.get_cell(row, col).rune_type == rune_type:
                return col
        raise ValueError(f"No {rune_type.value} cell in row {row}")

    def with_rune(self, row: int, col: int, rune: Rune) -> SpellWall:
        """Return a new wall with `rune` placed at (row, col)."""
        idx = self.index(row, col)
        new_cells = list(self.cells)
        new_cells[idx] = replace(self.cells[idx], rune=rune)
        return SpellWall(size=self.size, cells=tuple(new_cells))

    def filled_count(self) -> int:
        return sum(1 for cell in self.cells if cell.is_filled())


# =============================================================================
# Player & Score
# =============================================================================


@dataclass(frozen=True, slots=True)
class PlayerStats:
    """Health and armor. Armor absorbs damage before health."""

    current_health: int

    max_health: int

    current_armor: int = 0

    def with_health(self, health: int) -> PlayerStats:
        return replace(self, current_health=max(0, min(self.max_health, health)))

    def with_armor(self, armor: int) -> PlayerStats:
        return replace(self, current_armor=max(0, armor))

    def with_max_health(self, max_health: int) -> PlayerStats:
        return replace(
            self,
            max_health=max_health,
            current_health=min(max_health, self.current_health),
        )

    def is_dead(self) -> bool:
        return self.current_health == 0


@dataclass(frozen=True, slots=True)
class RuneScore:
    """Score accumulated this game against the game's target."""

    current: int

    target: int

    def add(self, amount: int) -> RuneScore:
        """Score never decreases within a game."""
        return replace(self, current=self.current + max(0, amount))

    def is_reached(self) -> bool:
        return self.current >= self.target


# =============================================================================
# Deck
# =============================================================================


@dataclass(frozen=True, slots=True)
class Deck:
    """Runes owned for the run and their per-game bookkeeping."""

    remaining_runes: tuple[Rune, ...]
    """Undrawn runes this game, top of deck first."""

    all_runes: tuple[Rune, ...]
    """Every rune in the run deck."""

    overloaded_runes: tuple[Rune, ...] = ()
    """Runes lost to overload this game."""

    def with_remaining(self, runes: Sequence[Rune]) -> Deck:
        return replace(self, remaining_runes=tuple(runes))

    def with_overloaded(self, runes: Sequence[Rune]) -> Deck:
        """Return a new deck with `runes` appended to the overloaded pile."""
        if not runes:
            return self
        return replace(self, overloaded_runes=(*self.overloaded_runes, *runes))

    def overload_counts(self) -> dict[RuneType, int]:
        counts: dict[RuneType, int] = {}
        for rune in self.overloaded_runes:
            counts[rune.rune_type] = counts.get(rune.rune_type, 0) + 1
        return counts


@dataclass(frozen=True, slots=True)
class DeckDraftOffer:
    """A runeforge offered after a victory; taking it adds its runes to the deck."""

    id: RuneforgeId

    runes: tuple[Rune, ...]

    effect: DeckDraftEffect


@dataclass(frozen=True, slots=True)
class DeckDraftState:
    """Progress through the post-victory deck draft."""

    offers: tuple[DeckDraftOffer, ...]

    picks_remaining: int

    total_picks: int

    selection_limit: int
    """Offers that may be taken from one set of offers."""

    selections_this_offer: int = 0


# =============================================================================
# Run State
# =============================================================================


@dataclass(frozen=True, slots=True)
class SoloRunState:
    """
    Complete immutable snapshot of a solo run.

    All transitions return new SoloRunState objects.
    """

    status: RunStatus

    game_index: int

    round_index: int

    player_stats: PlayerStats

    rune_score: RuneScore

    overload_damage: int
    """Overload damage per rune for the current round."""

    active_artefacts: frozenset[ArtefactId]

    deck: Deck

    runeforges: tuple[Runeforge, ...]

    center_pool: tuple[Rune, ...]

    pattern_lines: tuple[PatternLine, ...]

    floor_line: FloorLine

    spell_wall: SpellWall

    selected_runes: tuple[Rune, ...] = ()

    draft_source: DraftSource | None = None

    arcane_dust_earned: int = 0
    """Dust gained from rune effects this run, not yet banked."""

    deck_draft: DeckDraftState | None = None

    def is_terminal(self) -> bool:
        return self.status in (RunStatus.VICTORY, RunStatus.DEFEAT)

    def get_runeforge(self, runeforge_id: RuneforgeId) -> Runeforge | None:
        for forge in self.runeforges:
            if forge.id == runeforge_id:
                return forge
        return None

    def with_runeforge(self, forge: Runeforge) -> SoloRunState:
        """Return a new state with the forge of the same id replaced."""
        return replace(
            self,
            runeforges=tuple(forge if f.id == forge.id else f for f in self.runeforges),
        )

    def with_pattern_line(self, index: int, line: PatternLine) -> SoloRunState:
        new_lines = list(self.pattern_lines)
        new_lines[index] = line
        return replace(self, pattern_lines=tuple(new_lines))

    def with_status(self, status: RunStatus) -> SoloRunState:
        return replace(self, status=status)

    def with_stats(self, stats: PlayerStats) -> SoloRunState:
        return replace(self, player_stats=stats)

    def with_deck(self, deck: Deck) -> SoloRunState:
        return replace(self, deck=deck)

    def pools_empty(self) -> bool:
        """No rune left to draft anywhere."""
        return not self.center_pool and all(not f.runes for f in self.runeforges)
