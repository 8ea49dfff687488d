"""
Plain-dict (JSON-ready) conversion of run state.

`state_from_dict(state_to_dict(state)) == state` for every reachable state.
Malformed input raises KeyError, ValueError or TypeError.
"""

from __future__ import annotations

from typing import Any

from spellwall.types import (
    RuneId,
    RuneforgeId,
    PlayerId,
    RuneType,
    Rarity,
    RunStatus,
    ArtefactId,
    DeckDraftEffectType,
)
from spellwall.config import DeckDraftEffect
from spellwall.effects import parse_effect, effect_to_dict
from spellwall.models import (
    Rune,
    Runeforge,
    DraftSource,
    RuneforgeDraftSource,
    CenterDraftSource,
    PatternLine,
    FloorLine,
    WallCell,
    SpellWall,
    PlayerStats,
    RuneScore,
    Deck,
    DeckDraftOffer,
    DeckDraftState,
    SoloRunState,
)

FORMAT_VERSION = 1


# =============================================================================
# Runes
# =============================================================================


def rune_to_dict(rune: Rune) -> dict[str, Any]:
    return {
        "id": rune.id,
        "rune_type": rune.rune_type.value,
        "rarity": rune.rarity.value,
        "effects": [effect_to_dict(e) for e in rune.effects],
    }


def rune_from_dict(data: dict[str, Any]) -> Rune:
    return Rune(
        id=RuneId(data["id"]),
        rune_type=RuneType(data["rune_type"]),
        rarity=Rarity(data.get("rarity", Rarity.COMMON.value)),
        effects=tuple(parse_effect(e) for e in data.get("effects", [])),
    )


def _runes_to_list(runes: tuple[Rune, ...]) -> list[dict[str, Any]]:
    return [rune_to_dict(r) for r in runes]


def _runes_from_list(data: list[dict[str, Any]]) -> tuple[Rune, ...]:
    return tuple(rune_from_dict(r) for r in data)


# =============================================================================
# Containers
# =============================================================================


def _draft_source_to_dict(source: DraftSource | None) -> dict[str, Any] | None:
    match source:
        case None:
            return None
        case RuneforgeDraftSource():
            return {
                "type": "runeforge",
                "runeforge_id": source.runeforge_id,
                "original_runes": _runes_to_list(source.original_runes),
                "moved_to_center": _runes_to_list(source.moved_to_center),
            }
        case CenterDraftSource():
            return {"type": "center", "original_runes": _runes_to_list(source.original_runes)}


def _draft_source_from_dict(data: dict[str, Any] | None) -> DraftSource | None:
    if data is None:
        return None
    match data["type"]:
        case "runeforge":
            return RuneforgeDraftSource(
                runeforge_id=RuneforgeId(data["runeforge_id"]),
                original_runes=_runes_from_list(data["original_runes"]),
                moved_to_center=_runes_from_list(data["moved_to_center"]),
            )
        case "center":
            return CenterDraftSource(original_runes=_runes_from_list(data["original_runes"]))
        case other:
            raise ValueError(f"Unknown draft source type: {other}")


def _wall_to_dict(wall: SpellWall) -> dict[str, Any]:
    return {
        "size": wall.size,
        "cells": [
            {"rune_type": cell.rune_type.value, "rune": rune_to_dict(cell.rune) if cell.rune else None}
            for cell in wall.cells
        ],
    }


def _wall_from_dict(data: dict[str, Any]) -> SpellWall:
    size = int(data["size"])
    cells = tuple(
        WallCell(
            rune_type=RuneType(c["rune_type"]),
            rune=rune_from_dict(c["rune"]) if c["rune"] else None,
        )
        for c in data["cells"]
    )
    if len(cells) != size * size:
        raise ValueError(f"Wall of size {size} needs {size * size} cells, got {len(cells)}")
    return SpellWall(size=size, cells=cells)


def _deck_draft_to_dict(draft: DeckDraftState | None) -> dict[str, Any] | None:
    if draft is None:
        return None
    return {
        "offers": [
            {
                "id": offer.id,
                "runes": _runes_to_list(offer.runes),
                "effect": {"type": offer.effect.type.value, "amount": offer.effect.amount},
            }
            for offer in draft.offers
        ],
        "picks_remaining": draft.picks_remaining,
        "total_picks": draft.total_picks,
        "selection_limit": draft.selection_limit,
        "selections_this_offer": draft.selections_this_offer,
    }


def _deck_draft_from_dict(data: dict[str, Any] | None) -> DeckDraftState | None:
    if data is None:
        return None
    return DeckDraftState(
        offers=tuple(
            DeckDraftOffer(
                id=RuneforgeId(o["id"]),
                runes=_runes_from_list(o["runes"]),
                effect=DeckDraftEffect(DeckDraftEffectType(o["effect"]["type"]), int(o["effect"]["amount"])),
            )
            for o in data["offers"]
        ),
        picks_remaining=int(data["picks_remaining"]),
        total_picks=int(data["total_picks"]),
        selection_limit=int(data["selection_limit"]),
        selections_this_offer=int(data.get("selections_this_offer", 0)),
    )


# =============================================================================
# Run State
# =============================================================================


def state_to_dict(state: SoloRunState) -> dict[str, Any]:
    """Serialize a run state to JSON-compatible primitives."""
    return {
        "version": FORMAT_VERSION,
        "status": state.status.value,
        "game_index": state.game_index,
        "round_index": state.round_index,
        "player_stats": {
            "current_health": state.player_stats.current_health,
            "max_health": state.player_stats.max_health,
            "current_armor": state.player_stats.current_armor,
        },
        "rune_score": {"current": state.rune_score.current, "target": state.rune_score.target},
        "overload_damage": state.overload_damage,
        "active_artefacts": sorted(a.value for a in state.active_artefacts),
        "deck": {
            "remaining_runes": _runes_to_list(state.deck.remaining_runes),
            "all_runes": _runes_to_list(state.deck.all_runes),
            "overloaded_runes": _runes_to_list(state.deck.overloaded_runes),
        },
        "runeforges": [
            {
                "id": forge.id,
                "owner_id": forge.owner_id,
                "runes": _runes_to_list(forge.runes),
                "capacity": forge.capacity,
                "disabled": forge.disabled,
            }
            for forge in state.runeforges
        ],
        "center_pool": _runes_to_list(state.center_pool),
        "pattern_lines": [
            {"capacity": line.capacity, "runes": _runes_to_list(line.runes), "is_locked": line.is_locked}
            for line in state.pattern_lines
        ],
        "floor_line": {
            "max_capacity": state.floor_line.max_capacity,
            "runes": _runes_to_list(state.floor_line.runes),
        },
        "spell_wall": _wall_to_dict(state.spell_wall),
        "selected_runes": _runes_to_list(state.selected_runes),
        "draft_source": _draft_source_to_dict(state.draft_source),
        "arcane_dust_earned": state.arcane_dust_earned,
        "deck_draft": _deck_draft_to_dict(state.deck_draft),
    }


def state_from_dict(data: dict[str, Any]) -> SoloRunState:
    """Rebuild a run state from `state_to_dict` output."""
    version = data.get("version")
    if version != FORMAT_VERSION:
        raise ValueError(f"Unsupported save format version: {version}")

    stats = data["player_stats"]
    score = data["rune_score"]
    deck = data["deck"]
    floor = data["floor_line"]

    return SoloRunState(
        status=RunStatus(data["status"]),
        game_index=int(data["game_index"]),
        round_index=int(data["round_index"]),
        player_stats=PlayerStats(
            current_health=int(stats["current_health"]),
            max_health=int(stats["max_health"]),
            current_armor=int(stats.get("current_armor", 0)),
        ),
        rune_score=RuneScore(current=int(score["current"]), target=int(score["target"])),
        overload_damage=int(data["overload_damage"]),
        active_artefacts=frozenset(ArtefactId(a) for a in data.get("active_artefacts", [])),
        deck=Deck(
            remaining_runes=_runes_from_list(deck["remaining_runes"]),
            all_runes=_runes_from_list(deck["all_runes"]),
            overloaded_runes=_runes_from_list(deck.get("overloaded_runes", [])),
        ),
        runeforges=tuple(
            Runeforge(
                id=RuneforgeId(f["id"]),
                owner_id=PlayerId(f["owner_id"]),
                runes=_runes_from_list(f["runes"]),
                capacity=int(f["capacity"]),
                disabled=bool(f.get("disabled", False)),
            )
            for f in data["runeforges"]
        ),
        center_pool=_runes_from_list(data["center_pool"]),
        pattern_lines=tuple(
            PatternLine(
                capacity=int(line["capacity"]),
                runes=_runes_from_list(line["runes"]),
                is_locked=bool(line.get("is_locked", False)),
            )
            for line in data["pattern_lines"]
        ),
        floor_line=FloorLine(
            max_capacity=int(floor["max_capacity"]),
            runes=_runes_from_list(floor["runes"]),
        ),
        spell_wall=_wall_from_dict(data["spell_wall"]),
        selected_runes=_runes_from_list(data.get("selected_runes", [])),
        draft_source=_draft_source_from_dict(data.get("draft_source")),
        arcane_dust_earned=int(data.get("arcane_dust_earned", 0)),
        deck_draft=_deck_draft_from_dict(data.get("deck_draft")),
    )
