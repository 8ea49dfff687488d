"""
Artefact modifier pipeline.

Artefacts are bought with arcane dust and selected before a run. While the
run is active they only ever rescale numbers:

    Tome    - size-1 segments deal x10 damage, healing and armor
    Potion  - outgoing damage and armor x2, incoming damage x3
    Rod     - incoming damage is also added to the rune score, healing x2
    Ring    - epic deck draft odds x2
    Robe    - one more deck draft selection per offer

Every modifier is pure. An absent artefact is a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import AbstractSet

from spellwall.types import (
    ArtefactId,
    DEFAULT_DECK_DRAFT_SELECTION_LIMIT,
    MAX_DECK_DRAFT_SELECTION_LIMIT,
)
from spellwall.wall import ResolvedSegment


TOME_MULTIPLIER = 10
POTION_OUTGOING_MULTIPLIER = 2
POTION_INCOMING_MULTIPLIER = 3
ROD_HEALING_MULTIPLIER = 2
RING_EPIC_MULTIPLIER = 2


# =============================================================================
# Catalogue
# =============================================================================


@dataclass(frozen=True, slots=True)
class Artefact:
    """A purchasable artefact."""

    id: ArtefactId

    name: str

    cost: int
    """Price in arcane dust."""


ARTEFACTS: dict[ArtefactId, Artefact] = {
    ArtefactId.POTION: Artefact(ArtefactId.POTION, "Potion of Fury", 500),
    ArtefactId.ROD: Artefact(ArtefactId.ROD, "Rod of Suffering", 1000),
    ArtefactId.TOME: Artefact(ArtefactId.TOME, "Tome of Solitude", 2000),
    ArtefactId.RING: Artefact(ArtefactId.RING, "Ring of Fortune", 5000),
    ArtefactId.ROBE: Artefact(ArtefactId.ROBE, "Robe of the Archmage", 10000),
}


def get_artefact_effect_description(artefact_id: ArtefactId) -> str:
    match artefact_id:
        case ArtefactId.POTION:
            return "Double damage dealt and armor gained, but triple damage taken"
        case ArtefactId.ROD:
            return "Damage taken is added to your rune score, and healing is doubled"
        case ArtefactId.TOME:
            return "Segments of size 1 deal ten times the damage, healing and armor"
        case ArtefactId.RING:
            return "Double the odds of drafting epic runes"
        case ArtefactId.ROBE:
            return "Select one more runeforge from each deck draft offer"


def has_artefact(active_artefacts: AbstractSet[ArtefactId], artefact_id: ArtefactId) -> bool:
    return artefact_id in active_artefacts


# =============================================================================
# Single-Artefact Modifiers
# =============================================================================


def modify_value_with_tome(value: int, segment_size: int, has_tome: bool) -> int:
    return value * TOME_MULTIPLIER if has_tome and segment_size == 1 else value


def modify_segment_result_with_tome(segment: ResolvedSegment, has_tome: bool) -> ResolvedSegment:
    """Tome: a lone rune's damage, healing and armor are multiplied."""
    size = segment.segment_size
    return replace(
        segment,
        damage=modify_value_with_tome(segment.damage, size, has_tome),
        healing=modify_value_with_tome(segment.healing, size, has_tome),
        armor=modify_value_with_tome(segment.armor, size, has_tome),
    )


def modify_outgoing_damage_with_potion(damage: int, has_potion: bool) -> int:
    return damage * POTION_OUTGOING_MULTIPLIER if has_potion else damage


def modify_armor_gain_with_potion(armor: int, has_potion: bool) -> int:
    return armor * POTION_OUTGOING_MULTIPLIER if has_potion else armor


def modify_incoming_damage_with_potion(damage: int, has_potion: bool) -> int:
    return damage * POTION_INCOMING_MULTIPLIER if has_potion else damage


def get_damage_to_score_bonus_with_rod(damage: int, has_rod: bool) -> int:
    """Rod: damage taken also counts toward the rune score."""
    return damage if has_rod else 0


def modify_healing_with_rod(healing: int, has_rod: bool) -> int:
    return healing * ROD_HEALING_MULTIPLIER if has_rod else healing


@dataclass(frozen=True, slots=True)
class DraftRarityOdds:
    """Percent chances for a drafted rune's rarity. Always sums to 100."""

    epic_chance: float

    rare_chance: float

    uncommon_chance: float


def modify_draft_rarity_with_ring(
    base_epic_chance: float,
    base_rare_chance: float,
    has_ring: bool,
) -> DraftRarityOdds:
    """
    Ring: epic odds doubled (capped at 100).

    Rare and uncommon split what is left in the same proportion they had
    before. When the base odds leave nothing for non-epic rarities, both
    stay at zero.
    """
    if not has_ring:
        return DraftRarityOdds(
            epic_chance=base_epic_chance,
            rare_chance=base_rare_chance,
            uncommon_chance=100 - base_epic_chance - base_rare_chance,
        )

    epic_chance = min(100, base_epic_chance * RING_EPIC_MULTIPLIER)
    remaining = 100 - epic_chance
    original_non_epic = 100 - base_epic_chance

    if original_non_epic > 0:
        rare_share = base_rare_chance / original_non_epic
        rare_chance = remaining * rare_share
        uncommon_chance = remaining - rare_chance
    else:
        rare_chance = 0
        uncommon_chance = 0

    return DraftRarityOdds(
        epic_chance=epic_chance,
        rare_chance=rare_chance,
        uncommon_chance=uncommon_chance,
    )


def get_deck_draft_selection_limit(active_artefacts: AbstractSet[ArtefactId]) -> int:
    """Robe: one more runeforge may be taken from each deck draft offer."""
    limit = DEFAULT_DECK_DRAFT_SELECTION_LIMIT
    if has_artefact(active_artefacts, ArtefactId.ROBE):
        limit += 1
    return min(limit, MAX_DECK_DRAFT_SELECTION_LIMIT)


# =============================================================================
# Combinators
# =============================================================================


def apply_outgoing_damage_modifiers(
    base_damage: int,
    segment_size: int,
    active_artefacts: AbstractSet[ArtefactId],
) -> int:
    """Tome (size 1 only), then Potion."""
    damage = modify_value_with_tome(base_damage, segment_size, has_artefact(active_artefacts, ArtefactId.TOME))
    return modify_outgoing_damage_with_potion(damage, has_artefact(active_artefacts, ArtefactId.POTION))


def apply_outgoing_healing_modifiers(
    base_healing: int,
    segment_size: int,
    active_artefacts: AbstractSet[ArtefactId],
) -> int:
    """Tome (size 1 only), then Rod."""
    healing = modify_value_with_tome(base_healing, segment_size, has_artefact(active_artefacts, ArtefactId.TOME))
    return modify_healing_with_rod(healing, has_artefact(active_artefacts, ArtefactId.ROD))


def get_armor_gain_multiplier(segment_size: int, active_artefacts: AbstractSet[ArtefactId]) -> int:
    multiplier = modify_value_with_tome(1, segment_size, has_artefact(active_artefacts, ArtefactId.TOME))
    return modify_armor_gain_with_potion(multiplier, has_artefact(active_artefacts, ArtefactId.POTION))


def apply_incoming_damage_modifiers(
    base_damage: int,
    active_artefacts: AbstractSet[ArtefactId],
) -> tuple[int, int]:
    """
    Modify damage the player is about to take.

    Returns:
        Tuple of (damage, score_bonus). The Rod bonus is computed from the
        damage after the Potion multiplier.
    """
    damage = modify_incoming_damage_with_potion(base_damage, has_artefact(active_artefacts, ArtefactId.POTION))
    score_bonus = get_damage_to_score_bonus_with_rod(damage, has_artefact(active_artefacts, ArtefactId.ROD))
    return damage, score_bonus


def apply_segment_modifiers(
    segment: ResolvedSegment,
    active_artefacts: AbstractSet[ArtefactId],
) -> ResolvedSegment:
    """Apply every outgoing modifier to a resolved segment: Tome first, then Potion and Rod."""
    segment = modify_segment_result_with_tome(segment, has_artefact(active_artefacts, ArtefactId.TOME))
    has_potion = has_artefact(active_artefacts, ArtefactId.POTION)
    return replace(
        segment,
        damage=modify_outgoing_damage_with_potion(segment.damage, has_potion),
        healing=modify_healing_with_rod(segment.healing, has_artefact(active_artefacts, ArtefactId.ROD)),
        armor=modify_armor_gain_with_potion(segment.armor, has_potion),
    )
