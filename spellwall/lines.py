"""
Pattern line and floor line placement.

Selected runes go onto a pattern line up to its free space. Whatever does
not fit spills to the floor line, and whatever the floor cannot hold
overloads immediately.
"""

from __future__ import annotations

from typing import Sequence

from spellwall.models import Rune, PatternLine, FloorLine, SpellWall


def assign_to_pattern_line(
    line: PatternLine,
    runes: Sequence[Rune],
) -> tuple[PatternLine, tuple[Rune, ...]]:
    """
    Add runes to a pattern line in draft order.

    Type and lock checks are the caller's job (see rules.validate_pattern_line_placement).

    Returns:
        Tuple of (new_line, overflow_runes)
    """
    space = max(0, line.free_space)
    accepted = tuple(runes[:space])
    overflow = tuple(runes[space:])
    return line.with_runes((*line.runes, *accepted)), overflow


def place_in_floor(
    floor: FloorLine,
    runes: Sequence[Rune],
) -> tuple[FloorLine, tuple[Rune, ...]]:
    """
    Add runes to the floor line.

    A full floor is not an error: runes past capacity never take a slot and
    are returned to be overloaded.

    Returns:
        Tuple of (new_floor, overload_runes)
    """
    space = floor.free_space
    accepted = tuple(runes[:space])
    overload = tuple(runes[space:])
    return floor.with_runes((*floor.runes, *accepted)), overload


def find_best_pattern_line(
    selected: Sequence[Rune],
    pattern_lines: Sequence[PatternLine],
    spell_wall: SpellWall,
) -> int | None:
    """
    Pick a pattern line for an automatic placement.

    Prefers an unlocked line already holding the selected type with room
    left, then an empty line whose capacity matches the selection exactly.
    Rows whose wall cell for the type is filled are skipped.
    """
    if not selected:
        return None

    rune_type = selected[0].rune_type

    def row_open(index: int) -> bool:
        col = spell_wall.column_for(index, rune_type)
        return not spell_wall.get_cell(index, col).is_filled()

    for index, line in enumerate(pattern_lines):
        if line.is_locked or line.rune_type != rune_type:
            continue
        if line.free_space > 0 and row_open(index):
            return index

    for index, line in enumerate(pattern_lines):
        if line.is_locked or line.runes:
            continue
        if line.capacity == len(selected) and row_open(index):
            return index

    return None
