"""
Run progression: games, rounds, overload and victory/defeat.

A run is a sequence of games. Each game is a sequence of rounds; every
round deals one hand of runes into the runeforges. Between rounds leftover
and floor runes overload, hurting the player. A game is won when the rune
score reaches its target at a round boundary and lost when health runs out
or the deck can no longer deal.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, replace
from typing import AbstractSet, Sequence

from spellwall.types import PlayerId, RunStatus, ArtefactId
from spellwall.config import SoloRunConfig, DEFAULT_CONFIG, OVERLOAD_DAMAGE_PROGRESSION
from spellwall.models import (
    Rune,
    Deck,
    FloorLine,
    PatternLine,
    PlayerStats,
    RuneScore,
    SoloRunState,
)
from spellwall.events import (
    GameEvent,
    GameStartedEvent,
    RoundEndedEvent,
    RunesDealtEvent,
    OverloadEvent,
    VictoryEvent,
    DefeatEvent,
)
from spellwall.deck import shuffle_deck, draw_runes, deal_runeforges, create_deck_draft_state
from spellwall.wall import ResolvedSegment, create_spell_wall
from spellwall.artefacts import apply_incoming_damage_modifiers


ARCANE_DUST_PER_GAME = 50


# =============================================================================
# Lookups
# =============================================================================


def get_overload_damage_for_game(
    game_index: int,
    progression: Sequence[int] = OVERLOAD_DAMAGE_PROGRESSION,
) -> int:
    """Per-rune overload damage at the start of a game. Saturates at the last entry."""
    return progression[min(max(0, game_index), len(progression) - 1)]


def get_overload_damage_for_round(
    game_index: int,
    round_index: int,
    progression: Sequence[int] = OVERLOAD_DAMAGE_PROGRESSION,
) -> int:
    return get_overload_damage_for_game(game_index + round_index, progression)


def get_target_score(game_index: int, config: SoloRunConfig = DEFAULT_CONFIG) -> int:
    return config.base_target_score * (game_index + 1)


def get_arcane_dust_reward(game_index: int) -> int:
    """Dust banked for winning the game at `game_index`."""
    return (game_index + 1) * ARCANE_DUST_PER_GAME


# =============================================================================
# Damage
# =============================================================================


@dataclass(frozen=True, slots=True)
class OverloadResult:
    """Outcome of damage dealt to the player."""

    stats: PlayerStats

    absorbed_by_armor: int

    applied_damage: int
    """Damage that got past armor. Can exceed the health actually lost."""


def apply_damage(stats: PlayerStats, damage: int) -> OverloadResult:
    """Armor absorbs first; the rest reduces health, floored at zero."""
    damage = max(0, damage)
    absorbed = min(stats.current_armor, damage)
    applied = damage - absorbed
    new_stats = stats.with_armor(stats.current_armor - absorbed).with_health(
        stats.current_health - applied
    )
    return OverloadResult(stats=new_stats, absorbed_by_armor=absorbed, applied_damage=applied)


def apply_solo_overload_damage(
    stats: PlayerStats,
    overflow_runes: Sequence[Rune],
    overload_damage_per_rune: int,
) -> OverloadResult:
    """Overload `overflow_runes` at `overload_damage_per_rune` each, without artefacts."""
    return apply_damage(stats, len(overflow_runes) * overload_damage_per_rune)


def apply_overload(
    state: SoloRunState,
    runes: Sequence[Rune],
) -> tuple[SoloRunState, list[GameEvent]]:
    """
    Overload `runes` against the player.

    Incoming damage goes through the artefact pipeline (Potion, then Rod
    score bonus) before armor. The runes are recorded as overloaded for
    this game.
    """
    if not runes:
        return state, []

    base = len(runes) * state.overload_damage
    incoming, score_bonus = apply_incoming_damage_modifiers(base, state.active_artefacts)
    result = apply_damage(state.player_stats, incoming)

    new_state = replace(
        state,
        player_stats=result.stats,
        rune_score=state.rune_score.add(score_bonus),
        deck=state.deck.with_overloaded(runes),
    )
    event = OverloadEvent(
        rune_ids=tuple(r.id for r in runes),
        incoming_damage=incoming,
        absorbed_by_armor=result.absorbed_by_armor,
        applied_damage=result.applied_damage,
        score_bonus=score_bonus,
    )
    return new_state, [event]


def apply_resolved_segment(state: SoloRunState, segment: ResolvedSegment) -> SoloRunState:
    """Apply an already-modified segment: score, healing (capped), armor and dust."""
    stats = state.player_stats
    stats = stats.with_health(stats.current_health + segment.healing)
    stats = stats.with_armor(stats.current_armor + segment.armor)
    return replace(
        state,
        player_stats=stats,
        rune_score=state.rune_score.add(segment.damage),
        arcane_dust_earned=state.arcane_dust_earned + segment.arcane_dust,
    )


# =============================================================================
# Dealing
# =============================================================================


def deal_hand(
    state: SoloRunState,
    config: SoloRunConfig,
) -> tuple[SoloRunState, list[GameEvent]]:
    """
    Draw a hand into fresh runeforges.

    Draws beyond total forge capacity overload immediately.
    """
    deck, drawn = draw_runes(state.deck, config.draw_count)
    forges, overflow = deal_runeforges(drawn, config, config.player_id)
    new_state = replace(state, deck=deck, runeforges=forges, center_pool=())

    events: list[GameEvent] = [RunesDealtEvent(rune_count=len(drawn))]
    new_state, overload_events = apply_overload(new_state, overflow)
    events.extend(overload_events)
    return new_state, events


def next_game(
    game_index: int,
    player_stats: PlayerStats,
    active_artefacts: AbstractSet[ArtefactId],
    full_deck: Sequence[Rune],
    config: SoloRunConfig = DEFAULT_CONFIG,
    rng: random.Random | None = None,
    arcane_dust_earned: int = 0,
) -> tuple[SoloRunState, list[GameEvent]]:
    """
    Set up game `game_index` of a run.

    The deck is shuffled, a hand is dealt and the board is fresh. Health
    and max health carry over; armor does not.
    """
    rng = rng or random.Random()
    size = config.wall_size
    overload_damage = get_overload_damage_for_game(game_index, config.overload_damage_progression)
    target = get_target_score(game_index, config)

    state = SoloRunState(
        status=RunStatus.NOT_STARTED,
        game_index=game_index,
        round_index=0,
        player_stats=player_stats.with_armor(0),
        rune_score=RuneScore(current=0, target=target),
        overload_damage=overload_damage,
        active_artefacts=frozenset(active_artefacts),
        deck=Deck(remaining_runes=shuffle_deck(full_deck, rng), all_runes=tuple(full_deck)),
        runeforges=(),
        center_pool=(),
        pattern_lines=tuple(PatternLine(capacity=i + 1) for i in range(size)),
        floor_line=FloorLine(max_capacity=config.floor_capacity),
        spell_wall=create_spell_wall(size),
        arcane_dust_earned=arcane_dust_earned,
    )

    events: list[GameEvent] = [
        GameStartedEvent(game_index=game_index, target_score=target, overload_damage=overload_damage)
    ]
    state, deal_events = deal_hand(state, config)
    events.extend(deal_events)

    if state.player_stats.is_dead():
        state = state.with_status(RunStatus.DEFEAT)
        events.append(DefeatEvent(game_index=game_index, reason="Overloaded while dealing"))

    return state, events


# =============================================================================
# Round End
# =============================================================================


def end_round(
    state: SoloRunState,
    config: SoloRunConfig = DEFAULT_CONFIG,
    rng: random.Random | None = None,
) -> tuple[SoloRunState, list[GameEvent]]:
    """
    Finish the current round.

    Steps:
    1. Runes left in the pools (and any in-flight selection) and the floor
       line overload
    2. Floor is cleared, pattern lines are unlocked
    3. Round advances and overload damage steps up
    4. Defeat if health is zero; victory if the target score is reached
    5. Otherwise the next hand is dealt; an empty deck is a defeat
    """
    rng = rng or random.Random()
    events: list[GameEvent] = []

    leftovers = (
        *(r for forge in state.runeforges for r in forge.runes),
        *state.center_pool,
        *state.selected_runes,
        *state.floor_line.runes,
    )
    state, overload_events = apply_overload(state, leftovers)
    events.extend(overload_events)

    next_round = state.round_index + 1
    state = replace(
        state,
        round_index=next_round,
        overload_damage=get_overload_damage_for_round(
            state.game_index, next_round, config.overload_damage_progression
        ),
        runeforges=tuple(forge.with_runes(()) for forge in state.runeforges),
        center_pool=(),
        selected_runes=(),
        draft_source=None,
        floor_line=state.floor_line.with_runes(()),
        pattern_lines=tuple(line.unlocked() for line in state.pattern_lines),
    )
    events.append(RoundEndedEvent(round_index=next_round - 1))

    if state.player_stats.is_dead():
        return _defeat(state, events, "Health reached zero")

    if state.rune_score.is_reached():
        draft = create_deck_draft_state(
            PlayerId(config.player_id), state.game_index, state.active_artefacts, rng, config
        )
        state = replace(state, status=RunStatus.VICTORY, deck_draft=draft)
        events.append(VictoryEvent(game_index=state.game_index, score=state.rune_score.current))
        return state, events

    if not state.deck.remaining_runes:
        return _defeat(state, events, "Deck exhausted")

    state, deal_events = deal_hand(state, config)
    events.extend(deal_events)

    if state.player_stats.is_dead():
        return _defeat(state, events, "Health reached zero")

    return state, events


def _defeat(
    state: SoloRunState,
    events: list[GameEvent],
    reason: str,
) -> tuple[SoloRunState, list[GameEvent]]:
    events.append(DefeatEvent(game_index=state.game_index, reason=reason))
    return state.with_status(RunStatus.DEFEAT), events
