"""
Game rules and validation logic.

This module implements the legality checks shared by the engine:
- Draft validation (source access, selection in flight)
- Placement validation (line type, lock, wall row)
- The error taxonomy used to report rejected actions
"""

from __future__ import annotations

from dataclasses import dataclass

from spellwall.types import (
    RuneType,
    RuneforgeId,
    PlayerId,
    SourceId,
    RunStatus,
    ErrorKind,
    CENTER_SOURCE_ID,
)
from spellwall.models import (
    Rune,
    PatternLine,
    SpellWall,
    SoloRunState,
)


# =============================================================================
# Error Taxonomy
# =============================================================================


class ConsistencyViolation(Exception):
    """
    An engine invariant is broken (e.g. a wall cell is already occupied).

    Correct callers never trigger this. It aborts the operation that raised it.
    """

    kind = ErrorKind.CONSISTENCY_VIOLATION


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Result of validating an action."""

    valid: bool
    """Whether the action is valid."""

    reason: str
    """Explanation (for invalid actions)."""

    kind: ErrorKind | None = None
    """Error kind (for invalid actions)."""


VALID = ValidationResult(valid=True, reason="")


def invalid(kind: ErrorKind, reason: str) -> ValidationResult:
    return ValidationResult(valid=False, reason=reason, kind=kind)


# =============================================================================
# Run State
# =============================================================================


def validate_run_active(state: SoloRunState) -> ValidationResult:
    """Actions are only accepted while the run is not in a terminal state."""
    if state.is_terminal():
        return invalid(ErrorKind.RUN_OVER, f"Run is over ({state.status.value})")
    return VALID


# =============================================================================
# Draft Validation
# =============================================================================


def can_draft_from_center(state: SoloRunState, drafter_id: PlayerId) -> bool:
    """True when every runeforge owned by the drafter is empty or disabled."""
    return not any(
        forge.is_accessible() for forge in state.runeforges if forge.owner_id == drafter_id
    )


def validate_draft(
    state: SoloRunState,
    source_id: SourceId,
    rune_type: RuneType,
    drafter_id: PlayerId,
) -> ValidationResult:
    """
    Validate drafting `rune_type` from `source_id`.

    Checks:
    - Run is active
    - No selection is already in flight
    - Source exists, is accessible and holds the rune type
    - Center drafting only when the drafter has no accessible runeforge
    """
    active = validate_run_active(state)
    if not active.valid:
        return active

    if state.draft_source is not None or state.selected_runes:
        return invalid(ErrorKind.INVALID_SELECTION, "A selection is already in flight")

    if source_id == CENTER_SOURCE_ID:
        if not can_draft_from_center(state, drafter_id):
            return invalid(
                ErrorKind.SOURCE_UNAVAILABLE,
                "Center pool is unavailable while a runeforge can be drafted from",
            )
        if not any(rune.rune_type == rune_type for rune in state.center_pool):
            return invalid(ErrorKind.INVALID_SELECTION, f"No {rune_type.value} runes in center pool")
        return VALID

    forge = state.get_runeforge(RuneforgeId(source_id))
    if forge is None:
        return invalid(ErrorKind.INVALID_SELECTION, f"Unknown source: {source_id}")
    if forge.disabled:
        return invalid(ErrorKind.INVALID_SELECTION, f"Runeforge {source_id} is disabled")
    if not forge.runes:
        return invalid(ErrorKind.INVALID_SELECTION, f"Runeforge {source_id} is empty")
    if forge.owner_id != drafter_id:
        return invalid(ErrorKind.INVALID_SELECTION, f"Runeforge {source_id} is not owned by {drafter_id}")
    if not forge.has_rune_type(rune_type):
        return invalid(ErrorKind.INVALID_SELECTION, f"No {rune_type.value} runes in {source_id}")

    return VALID


# =============================================================================
# Placement Validation
# =============================================================================


def validate_pattern_line_placement(
    line_index: int,
    runes: tuple[Rune, ...],
    pattern_lines: tuple[PatternLine, ...],
    spell_wall: SpellWall,
) -> ValidationResult:
    """
    Validate placing `runes` on the pattern line at `line_index`.

    Checks:
    - There is a selection and it is a single rune type
    - Line exists, is not locked and is not already full
    - Line is empty or holds the same type
    - The wall cell for this row and type is still empty
    """
    if not runes:
        return invalid(ErrorKind.INVALID_SELECTION, "No runes selected")

    rune_type = runes[0].rune_type
    if any(rune.rune_type != rune_type for rune in runes):
        return invalid(ErrorKind.INVALID_SELECTION, "Selection mixes rune types")

    if not 0 <= line_index < len(pattern_lines):
        return invalid(ErrorKind.INVALID_SELECTION, f"Invalid pattern line: {line_index}")

    line = pattern_lines[line_index]
    if line.is_locked:
        return invalid(ErrorKind.INVALID_SELECTION, f"Pattern line {line_index} is locked")

    if line.rune_type is not None and line.rune_type != rune_type:
        return invalid(
            ErrorKind.INVALID_SELECTION,
            f"Pattern line {line_index} holds {line.rune_type.value}, not {rune_type.value}",
        )

    if line.free_space <= 0:
        return invalid(ErrorKind.INVALID_SELECTION, f"Pattern line {line_index} is full")

    col = spell_wall.column_for(line_index, rune_type)
    if spell_wall.get_cell(line_index, col).is_filled():
        return invalid(
            ErrorKind.INVALID_SELECTION,
            f"{rune_type.value} is already on the wall in row {line_index}",
        )

    return VALID


def status_after_action(state: SoloRunState) -> RunStatus:
    """Status once an action has been taken: defeat on zero health, else in progress."""
    if state.player_stats.is_dead():
        return RunStatus.DEFEAT
    return RunStatus.IN_PROGRESS
