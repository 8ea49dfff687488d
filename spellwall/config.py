"""
Run configuration.

Defaults describe the standard solo run. A configuration can also be loaded
from a JSON file whose keys match the dataclass fields.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from spellwall.types import PlayerId, DeckDraftEffectType, SegmentConnectivity, RUNE_TYPES


class ConfigError(ValueError):
    """Raised when a configuration file is malformed."""


OVERLOAD_DAMAGE_PROGRESSION: tuple[int, ...] = (
    1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15, 16, 17, 18, 19, 20,
    22, 24, 26, 28, 30, 35, 40, 50, 60, 70, 80, 90, 100,
)
"""Overload damage per rune, indexed by game (and round) number."""


@dataclass(frozen=True, slots=True)
class DeckDraftEffect:
    """Bonus granted when a deck draft offer is taken."""

    type: DeckDraftEffectType

    amount: int = 0
    """Health amount for HEAL / MAX_HEALTH, rarity steps for BETTER_RUNES."""


@dataclass(frozen=True, slots=True)
class DeckDraftingConfig:
    """Post-victory deck upgrade settings."""

    runeforge_count: int = 3
    base_picks: int = 1
    rare_chance_multiplier: int = 5
    epic_chance_multiplier: int = 1
    draft_effects: tuple[DeckDraftEffect, ...] = (
        DeckDraftEffect(DeckDraftEffectType.HEAL, 50),
        DeckDraftEffect(DeckDraftEffectType.MAX_HEALTH, 25),
        DeckDraftEffect(DeckDraftEffectType.BETTER_RUNES, 1),
    )


@dataclass(frozen=True, slots=True)
class SoloRunConfig:
    """Numbers that shape a solo run."""

    player_id: PlayerId = PlayerId("player-1")
    starting_health: int = 100
    starting_armor: int = 0

    wall_size: int = len(RUNE_TYPES)
    """Wall is wall_size x wall_size; also the number of pattern lines."""

    runeforge_count: int = 5
    runeforge_capacity: int = 4
    draw_count: int = 20
    floor_capacity: int = 7
    copies_per_type: int = 16

    base_target_score: int = 30
    """Target score for game index i is base_target_score * (i + 1)."""

    overload_damage_progression: tuple[int, ...] = OVERLOAD_DAMAGE_PROGRESSION

    segment_connectivity: SegmentConnectivity = SegmentConnectivity.SAME_TYPE
    """With the diagonal layout, same-type cells are never orthogonally adjacent."""

    deck_drafting: DeckDraftingConfig = field(default_factory=DeckDraftingConfig)

    def __post_init__(self) -> None:
        if self.wall_size != len(RUNE_TYPES):
            raise ConfigError(f"wall_size must be {len(RUNE_TYPES)}, got {self.wall_size}")
        if not self.overload_damage_progression:
            raise ConfigError("overload_damage_progression must not be empty")
        if any(b < a for a, b in zip(self.overload_damage_progression, self.overload_damage_progression[1:])):
            raise ConfigError("overload_damage_progression must be non-decreasing")
        for name in ("starting_health", "runeforge_count", "runeforge_capacity", "draw_count"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.floor_capacity < 0 or self.base_target_score < 0:
            raise ConfigError("floor_capacity and base_target_score must not be negative")

    @property
    def forge_capacity_total(self) -> int:
        return self.runeforge_count * self.runeforge_capacity


DEFAULT_CONFIG = SoloRunConfig()


def _parse_deck_drafting(data: dict[str, Any]) -> DeckDraftingConfig:
    known = {f.name for f in fields(DeckDraftingConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown deck_drafting keys: {sorted(unknown)}")

    values = dict(data)
    if "draft_effects" in values:
        values["draft_effects"] = tuple(
            DeckDraftEffect(DeckDraftEffectType(e["type"]), int(e.get("amount", 0)))
            for e in values["draft_effects"]
        )
    return DeckDraftingConfig(**values)


def config_from_dict(data: dict[str, Any]) -> SoloRunConfig:
    """Build a config from a plain dictionary, rejecting unknown keys."""
    known = {f.name for f in fields(SoloRunConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown config keys: {sorted(unknown)}")

    values = dict(data)
    try:
        if "player_id" in values:
            values["player_id"] = PlayerId(str(values["player_id"]))
        if "overload_damage_progression" in values:
            values["overload_damage_progression"] = tuple(int(v) for v in values["overload_damage_progression"])
        if "segment_connectivity" in values:
            values["segment_connectivity"] = SegmentConnectivity(values["segment_connectivity"])
        if "deck_drafting" in values:
            values["deck_drafting"] = _parse_deck_drafting(values["deck_drafting"])
        return SoloRunConfig(**values)
    except ConfigError:
        raise
    except (TypeError, KeyError, ValueError) as e:
        raise ConfigError(str(e)) from e


def load_config(path: Path | str) -> SoloRunConfig:
    """Load a run configuration from a JSON file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be an object, got {type(data).__name__}")
    return config_from_dict(data)
