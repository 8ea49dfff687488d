"""
Deck construction, dealing and post-victory deck upgrades.

A run starts with a deck of common runes. Each game the deck is shuffled
and one hand is drawn into the runeforges per round. After a victory the
player may draft extra runeforges into the deck, or disenchant runes for
arcane dust between games.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import AbstractSet, Sequence

from spellwall.types import (
    RuneId,
    RuneforgeId,
    PlayerId,
    Rarity,
    ArtefactId,
    DeckDraftEffectType,
    RUNE_TYPES,
    RARITY_ORDER,
)
from spellwall.config import SoloRunConfig, DeckDraftEffect, DEFAULT_CONFIG
from spellwall.models import (
    Rune,
    Runeforge,
    Deck,
    PlayerStats,
    DeckDraftOffer,
    DeckDraftState,
)
from spellwall.effects import get_base_effects, get_draft_effects
from spellwall.artefacts import has_artefact, modify_draft_rarity_with_ring, get_deck_draft_selection_limit


DISENCHANT_VALUES: dict[Rarity, int] = {
    Rarity.COMMON: 1,
    Rarity.UNCOMMON: 5,
    Rarity.RARE: 15,
    Rarity.EPIC: 40,
}
"""Arcane dust returned by disenchanting a rune."""

MIN_DECK_SIZE = 1


# =============================================================================
# Deck Basics
# =============================================================================


def create_starting_deck(config: SoloRunConfig = DEFAULT_CONFIG) -> tuple[Rune, ...]:
    """`copies_per_type` common runes of every type."""
    return tuple(
        Rune(
            id=RuneId(f"{rune_type.value}-{i}"),
            rune_type=rune_type,
            effects=get_base_effects(rune_type),
        )
        for rune_type in RUNE_TYPES
        for i in range(config.copies_per_type)
    )


def shuffle_deck(runes: Sequence[Rune], rng: random.Random) -> tuple[Rune, ...]:
    shuffled = list(runes)
    rng.shuffle(shuffled)
    return tuple(shuffled)


def draw_runes(deck: Deck, count: int) -> tuple[Deck, tuple[Rune, ...]]:
    """
    Draw up to `count` runes from the top of the deck.

    Returns:
        Tuple of (new_deck, drawn_runes)
    """
    count = max(0, min(count, len(deck.remaining_runes)))
    drawn = deck.remaining_runes[:count]
    return deck.with_remaining(deck.remaining_runes[count:]), drawn


def deal_runeforges(
    runes: Sequence[Rune],
    config: SoloRunConfig,
    owner_id: PlayerId,
) -> tuple[tuple[Runeforge, ...], tuple[Rune, ...]]:
    """
    Fill the runeforges in order.

    Returns:
        Tuple of (runeforges, overflow) where overflow is whatever did not
        fit into `runeforge_count * runeforge_capacity` slots.
    """
    capacity = config.runeforge_capacity
    forges = tuple(
        Runeforge(
            id=RuneforgeId(f"runeforge-{n + 1}"),
            owner_id=owner_id,
            runes=tuple(runes[n * capacity:(n + 1) * capacity]),
            capacity=capacity,
        )
        for n in range(config.runeforge_count)
    )
    overflow = tuple(runes[config.forge_capacity_total:])
    return forges, overflow


# =============================================================================
# Deck Drafting
# =============================================================================


def boost_rarity(rarity: Rarity, steps: int = 1) -> Rarity:
    """Move `steps` tiers up the rarity order, stopping at epic."""
    index = RARITY_ORDER.index(rarity)
    return RARITY_ORDER[min(len(RARITY_ORDER) - 1, index + steps)]


def roll_draft_rarity(
    game_index: int,
    active_artefacts: AbstractSet[ArtefactId],
    rng: random.Random,
    config: SoloRunConfig = DEFAULT_CONFIG,
) -> Rarity:
    """Roll the rarity of a drafted rune. Odds improve with every game won."""
    drafting = config.deck_drafting
    base_epic = min(100, game_index * drafting.epic_chance_multiplier)
    base_rare = min(100 - base_epic, game_index * drafting.rare_chance_multiplier)
    odds = modify_draft_rarity_with_ring(base_epic, base_rare, has_artefact(active_artefacts, ArtefactId.RING))

    roll = rng.random() * 100
    if roll < odds.epic_chance:
        return Rarity.EPIC
    if roll < odds.epic_chance + odds.rare_chance:
        return Rarity.RARE
    return Rarity.UNCOMMON


def _create_offers(
    owner_id: PlayerId,
    game_index: int,
    pick_number: int,
    active_artefacts: AbstractSet[ArtefactId],
    rng: random.Random,
    config: SoloRunConfig,
) -> tuple[DeckDraftOffer, ...]:
    drafting = config.deck_drafting
    capacity = config.runeforge_capacity
    offers: list[DeckDraftOffer] = []

    for forge_index in range(drafting.runeforge_count):
        effect = drafting.draft_effects[forge_index % len(drafting.draft_effects)]
        runes: list[Rune] = []
        for i in range(capacity):
            rune_type = rng.choice(RUNE_TYPES)
            rarity = roll_draft_rarity(game_index, active_artefacts, rng, config)
            if effect.type == DeckDraftEffectType.BETTER_RUNES and i == 0:
                rarity = boost_rarity(rarity, effect.amount)
            runes.append(
                Rune(
                    id=RuneId(f"draft-{owner_id}-{game_index}-{pick_number}-{forge_index * capacity + i}"),
                    rune_type=rune_type,
                    rarity=rarity,
                    effects=get_draft_effects(rune_type, rarity),
                )
            )
        offers.append(
            DeckDraftOffer(
                id=RuneforgeId(f"draft-forge-{forge_index + 1}"),
                runes=tuple(runes),
                effect=effect,
            )
        )

    return tuple(offers)


def create_deck_draft_state(
    owner_id: PlayerId,
    game_index: int,
    active_artefacts: AbstractSet[ArtefactId],
    rng: random.Random,
    config: SoloRunConfig = DEFAULT_CONFIG,
) -> DeckDraftState:
    """Build the first set of offers after a victory."""
    total_picks = config.deck_drafting.base_picks
    return DeckDraftState(
        offers=_create_offers(owner_id, game_index, total_picks, active_artefacts, rng, config),
        picks_remaining=total_picks,
        total_picks=total_picks,
        selection_limit=get_deck_draft_selection_limit(active_artefacts),
    )


def apply_deck_draft_effect(stats: PlayerStats, effect: DeckDraftEffect) -> PlayerStats:
    match effect.type:
        case DeckDraftEffectType.HEAL:
            return stats.with_health(stats.max_health)
        case DeckDraftEffectType.MAX_HEALTH:
            return stats.with_max_health(stats.max_health + effect.amount)
        case DeckDraftEffectType.BETTER_RUNES:
            return stats


def pick_deck_draft_offer(
    draft: DeckDraftState,
    offer_index: int,
    deck: Deck,
    stats: PlayerStats,
    owner_id: PlayerId,
    game_index: int,
    active_artefacts: AbstractSet[ArtefactId],
    rng: random.Random,
    config: SoloRunConfig = DEFAULT_CONFIG,
) -> tuple[DeckDraftState | None, Deck, PlayerStats]:
    """
    Take one offer: its runes join the deck and its effect applies.

    Once `selection_limit` offers have been taken from the current set (or
    none is left), one pick is used up and a fresh set is rolled. The draft
    ends (None) when no picks remain.

    Returns:
        Tuple of (new_draft_or_none, new_deck, new_stats)
    """
    if not 0 <= offer_index < len(draft.offers):
        raise IndexError(f"No deck draft offer {offer_index}")

    offer = draft.offers[offer_index]
    new_deck = replace(deck, all_runes=(*deck.all_runes, *offer.runes))
    new_stats = apply_deck_draft_effect(stats, offer.effect)

    remaining_offers = draft.offers[:offer_index] + draft.offers[offer_index + 1:]
    selections = draft.selections_this_offer + 1

    if selections < draft.selection_limit and remaining_offers:
        new_draft = replace(draft, offers=remaining_offers, selections_this_offer=selections)
        return new_draft, new_deck, new_stats

    picks_remaining = max(0, draft.picks_remaining - 1)
    if picks_remaining == 0:
        return None, new_deck, new_stats

    new_draft = replace(
        draft,
        offers=_create_offers(owner_id, game_index, picks_remaining, active_artefacts, rng, config),
        picks_remaining=picks_remaining,
        selections_this_offer=0,
    )
    return new_draft, new_deck, new_stats


# =============================================================================
# Disenchanting
# =============================================================================


def disenchant_rune(deck: Deck, rune_id: RuneId) -> tuple[Deck, int]:
    """
    Remove a rune from the deck for arcane dust.

    Returns:
        Tuple of (new_deck, arcane_dust)

    Raises:
        KeyError: the rune is not in the deck.
        ValueError: removing it would leave the deck empty.
    """
    rune = next((r for r in deck.all_runes if r.id == rune_id), None)
    if rune is None:
        raise KeyError(rune_id)
    if len(deck.all_runes) <= MIN_DECK_SIZE:
        raise ValueError("Cannot disenchant the last rune in the deck")

    new_deck = replace(
        deck,
        all_runes=tuple(r for r in deck.all_runes if r.id != rune_id),
        remaining_runes=tuple(r for r in deck.remaining_runes if r.id != rune_id),
    )
    return new_deck, DISENCHANT_VALUES[rune.rarity]
