"""
Spell wall resolution.

When a pattern line completes, its first rune is placed on the wall in the
line's row. The contiguous same-type segment containing the new cell is then
measured with a flood fill and its runes' effects are totalled into a
ResolvedSegment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Mapping

from spellwall.types import RuneType, SegmentConnectivity, RUNE_TYPES
from spellwall.models import Rune, SpellWall, WallCell, SoloRunState
from spellwall.effects import SegmentContext, ChannelSynergyEffect, RuneEffect
from spellwall.rules import ConsistencyViolation

logger = logging.getLogger(__name__)

Cell = tuple[int, int]
"""(row, col) on the wall."""

_NEIGHBOR_OFFSETS: tuple[Cell, ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


# =============================================================================
# Resolution Results
# =============================================================================


@dataclass(frozen=True, slots=True)
class RuneResolutionStep:
    """What one rune of the segment contributed, base damage included."""

    cell: Cell

    damage_delta: int

    healing_delta: int = 0

    armor_delta: int = 0

    arcane_dust_delta: int = 0


@dataclass(frozen=True, slots=True)
class ChannelSynergyStep:
    """Damage a rune channelled from overloaded runes."""

    cell: Cell

    overloaded_count: int

    damage_delta: int


ResolutionStep = RuneResolutionStep | ChannelSynergyStep


@dataclass(frozen=True, slots=True)
class ResolvedSegment:
    """Totals for the segment a wall placement joined."""

    segment_size: int

    damage: int

    healing: int = 0

    armor: int = 0

    arcane_dust: int = 0

    ordered_cells: tuple[Cell, ...] = ()
    """Cells in flood-fill visit order, starting with the placed cell."""

    resolution_steps: tuple[ResolutionStep, ...] = ()
    """Rune steps in reading order, each followed by its channel step if any."""

    channel_synergy_triggered: bool = False


# =============================================================================
# Wall Construction
# =============================================================================


def cell_rune_type(row: int, col: int, size: int = len(RUNE_TYPES)) -> RuneType:
    """Fixed diagonal layout: each row is the previous one shifted right by one."""
    return RUNE_TYPES[(row - col) % size]


def create_spell_wall(size: int = len(RUNE_TYPES)) -> SpellWall:
    """Create an empty wall."""
    cells = tuple(
        WallCell(rune_type=cell_rune_type(row, col, size))
        for row in range(size)
        for col in range(size)
    )
    return SpellWall(size=size, cells=cells)


# =============================================================================
# Segment Measurement
# =============================================================================


def flood_fill_segment(
    wall: SpellWall,
    row: int,
    col: int,
    connectivity: SegmentConnectivity = SegmentConnectivity.SAME_TYPE,
) -> tuple[Cell, ...]:
    """
    Collect the filled cells 4-connected to (row, col).

    With SAME_TYPE connectivity only cells of the start cell's type join.

    Returns the cells in visit order. Empty when the start cell is empty.
    """
    start = wall.get_cell(row, col)
    if not start.is_filled():
        return ()

    target_type = start.rune_type
    visited: set[int] = set()
    stack: list[Cell] = [(row, col)]
    ordered: list[Cell] = []

    while stack:
        r, c = stack.pop()
        idx = wall.index(r, c)
        if idx in visited:
            continue
        visited.add(idx)
        ordered.append((r, c))

        for dr, dc in _NEIGHBOR_OFFSETS:
            nr, nc = r + dr, c + dc
            if not wall.in_bounds(nr, nc) or wall.index(nr, nc) in visited:
                continue
            neighbor = wall.cells[wall.index(nr, nc)]
            if not neighbor.is_filled():
                continue
            if connectivity == SegmentConnectivity.ANY_RUNE or neighbor.rune_type == target_type:
                stack.append((nr, nc))

    return tuple(ordered)


def resolve_segment_from_cells(
    wall: SpellWall,
    cells: tuple[Cell, ...],
    overload_counts: Mapping[RuneType, int] | None = None,
) -> ResolvedSegment:
    """
    Total the segment made of `cells`.

    Every rune deals 1 base damage. Each rune's effects are then evaluated
    in reading order against the segment's type counts and the game's
    overloaded runes.
    """
    runes = [(cell, wall.get_cell(*cell).rune) for cell in sorted(cells)]
    type_counts: dict[RuneType, int] = {}
    for _, rune in runes:
        if rune is not None:
            type_counts[rune.rune_type] = type_counts.get(rune.rune_type, 0) + 1

    context = SegmentContext(type_counts=type_counts, overload_counts=overload_counts or {})

    damage = healing = armor = dust = 0
    steps: list[ResolutionStep] = []
    channel_triggered = False

    for cell, rune in runes:
        if rune is None:
            raise ConsistencyViolation(f"Segment cell {cell} is empty")

        step_damage, step_healing, step_armor, step_dust = 1, 0, 0, 0
        channel_damage = 0
        for effect in rune.effects:
            delta = effect.resolve(context)
            if isinstance(effect, ChannelSynergyEffect):
                channel_damage += delta.damage
                continue
            step_damage += delta.damage
            step_healing += delta.healing
            step_armor += delta.armor
            step_dust += delta.arcane_dust

        steps.append(
            RuneResolutionStep(
                cell=cell,
                damage_delta=step_damage,
                healing_delta=step_healing,
                armor_delta=step_armor,
                arcane_dust_delta=step_dust,
            )
        )
        if channel_damage > 0:
            channel_triggered = True
            steps.append(
                ChannelSynergyStep(
                    cell=cell,
                    overloaded_count=context.overloaded(_channel_type(rune.effects)),
                    damage_delta=channel_damage,
                )
            )

        damage += step_damage + channel_damage
        healing += step_healing
        armor += step_armor
        dust += step_dust

    return ResolvedSegment(
        segment_size=len(cells),
        damage=damage,
        healing=healing,
        armor=armor,
        arcane_dust=dust,
        ordered_cells=cells,
        resolution_steps=tuple(steps),
        channel_synergy_triggered=channel_triggered,
    )


def _channel_type(effects: tuple[RuneEffect, ...]) -> RuneType | None:
    for effect in effects:
        if isinstance(effect, ChannelSynergyEffect):
            return effect.synergy_type
    return None


# =============================================================================
# Placement
# =============================================================================


def place_on_wall(wall: SpellWall, line_index: int, rune: Rune) -> tuple[SpellWall, Cell]:
    """Put `rune` into its cell in row `line_index`."""
    col = wall.column_for(line_index, rune.rune_type)
    if wall.get_cell(line_index, col).is_filled():
        raise ConsistencyViolation(
            f"Wall cell ({line_index}, {col}) for {rune.rune_type.value} is already occupied"
        )
    return wall.with_rune(line_index, col, rune), (line_index, col)


def resolve_placement(
    state: SoloRunState,
    line_index: int,
    connectivity: SegmentConnectivity = SegmentConnectivity.SAME_TYPE,
) -> tuple[SoloRunState, ResolvedSegment]:
    """
    Move a completed line's first rune to the wall and resolve its segment.

    The line is cleared and locked for the rest of the round. The segment is
    returned before artefact modifiers are applied.

    Raises:
        ConsistencyViolation: the line is not complete or the target cell
            is already occupied.
    """
    if not 0 <= line_index < len(state.pattern_lines):
        raise ConsistencyViolation(f"No pattern line {line_index}")

    line = state.pattern_lines[line_index]
    if not line.runes or not line.is_complete():
        raise ConsistencyViolation(
            f"Pattern line {line_index} is not complete ({line.occupancy}/{line.capacity})"
        )

    wall, (row, col) = place_on_wall(state.spell_wall, line_index, line.runes[0])
    cells = flood_fill_segment(wall, row, col, connectivity)
    segment = resolve_segment_from_cells(wall, cells, state.deck.overload_counts())

    logger.debug(
        f"Resolved {line.rune_type.value} at ({row}, {col}): "
        f"size={segment.segment_size} damage={segment.damage}"
    )

    new_state = replace(state, spell_wall=wall).with_pattern_line(line_index, line.cleared_and_locked())
    return new_state, segment
