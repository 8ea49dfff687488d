"""
Event types for the rune engine.

Events form a typed log of everything that happens during a run.
They are designed to be consumed by UI layers for rendering animations
and state updates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from spellwall.types import (
    RuneId,
    RuneType,
    SourceId,
    ArtefactId,
    ErrorKind,
)

if TYPE_CHECKING:
    from spellwall.wall import ResolvedSegment


# =============================================================================
# Game Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class GameStartedEvent:
    """A new game of the run was dealt."""

    game_index: int

    target_score: int

    overload_damage: int

    @property
    def event_type(self) -> str:
        return "game_started"


@dataclass(frozen=True, slots=True)
class RoundEndedEvent:
    """A round finished and the next hand was (or could not be) dealt."""

    round_index: int
    """The round that ended."""

    @property
    def event_type(self) -> str:
        return "round_ended"


@dataclass(frozen=True, slots=True)
class RunesDealtEvent:
    """Runes were drawn from the deck into the runeforges."""

    rune_count: int

    @property
    def event_type(self) -> str:
        return "runes_dealt"


@dataclass(frozen=True, slots=True)
class VictoryEvent:
    """The target score was reached at a round boundary."""

    game_index: int

    score: int

    @property
    def event_type(self) -> str:
        return "victory"


@dataclass(frozen=True, slots=True)
class DefeatEvent:
    """The run is lost."""

    game_index: int

    reason: str

    @property
    def event_type(self) -> str:
        return "defeat"


# =============================================================================
# Draft Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class RunesDraftedEvent:
    """All runes of a type were taken from a source."""

    source_id: SourceId

    rune_type: RuneType

    rune_ids: tuple[RuneId, ...]

    moved_to_center: tuple[RuneId, ...]

    @property
    def event_type(self) -> str:
        return "runes_drafted"


@dataclass(frozen=True, slots=True)
class SelectionCancelledEvent:
    """The in-flight selection was returned to its source."""

    source_id: SourceId

    @property
    def event_type(self) -> str:
        return "selection_cancelled"


# =============================================================================
# Placement Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class RunesPlacedEvent:
    """Runes were added to a pattern line."""

    line_index: int

    rune_ids: tuple[RuneId, ...]

    @property
    def event_type(self) -> str:
        return "runes_placed"


@dataclass(frozen=True, slots=True)
class RunesToFloorEvent:
    """Runes went to the floor line."""

    rune_ids: tuple[RuneId, ...]

    @property
    def event_type(self) -> str:
        return "runes_to_floor"


@dataclass(frozen=True, slots=True)
class OverloadEvent:
    """Runes overloaded and dealt damage to the player."""

    rune_ids: tuple[RuneId, ...]

    incoming_damage: int
    """Damage after artefact modifiers, before armor."""

    absorbed_by_armor: int

    applied_damage: int
    """Damage that reached health."""

    score_bonus: int

    @property
    def event_type(self) -> str:
        return "overload"


@dataclass(frozen=True, slots=True)
class SegmentResolvedEvent:
    """A completed line placed a rune on the wall and its segment resolved."""

    line_index: int

    row: int

    col: int

    segment: ResolvedSegment
    """The segment after artefact modifiers."""

    @property
    def event_type(self) -> str:
        return "segment_resolved"


# =============================================================================
# Meta Events
# =============================================================================


@dataclass(frozen=True, slots=True)
class DeckDraftPickedEvent:
    """A post-victory deck draft offer was taken."""

    offer_index: int

    rune_ids: tuple[RuneId, ...]

    @property
    def event_type(self) -> str:
        return "deck_draft_picked"


@dataclass(frozen=True, slots=True)
class RuneDisenchantedEvent:
    """A rune was removed from the deck for arcane dust."""

    rune_id: RuneId

    arcane_dust: int

    @property
    def event_type(self) -> str:
        return "rune_disenchanted"


@dataclass(frozen=True, slots=True)
class ArtefactPurchasedEvent:
    """An artefact was bought."""

    artefact_id: ArtefactId

    cost: int

    @property
    def event_type(self) -> str:
        return "artefact_purchased"


@dataclass(frozen=True, slots=True)
class ArtefactSelectionChangedEvent:
    """The selected artefact set changed."""

    selected: tuple[ArtefactId, ...]

    @property
    def event_type(self) -> str:
        return "artefact_selection_changed"


@dataclass(frozen=True, slots=True)
class ActionInvalidEvent:
    """An action was invalid and rejected. State is unchanged."""

    kind: ErrorKind

    reason: str
    """Explanation of why the action was invalid."""

    @property
    def event_type(self) -> str:
        return "action_invalid"


# =============================================================================
# Event Union Type
# =============================================================================

GameEvent = (
    GameStartedEvent
    | RoundEndedEvent
    | RunesDealtEvent
    | VictoryEvent
    | DefeatEvent
    | RunesDraftedEvent
    | SelectionCancelledEvent
    | RunesPlacedEvent
    | RunesToFloorEvent
    | OverloadEvent
    | SegmentResolvedEvent
    | DeckDraftPickedEvent
    | RuneDisenchantedEvent
    | ArtefactPurchasedEvent
    | ArtefactSelectionChangedEvent
    | ActionInvalidEvent
)
