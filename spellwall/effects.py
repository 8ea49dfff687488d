"""
Rune effect primitives.

Effects are small, data-driven records attached to runes when they are
created or drafted. Each effect knows how much damage, healing, armor and
arcane dust it contributes once its rune becomes part of a resolved segment
on the spell wall.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from spellwall.types import RuneType, Rarity


# =============================================================================
# Resolution Context
# =============================================================================


@dataclass(frozen=True, slots=True)
class SegmentContext:
    """What an effect can see while its segment is being resolved."""

    type_counts: Mapping[RuneType, int]
    """Number of runes of each type in the segment."""

    overload_counts: Mapping[RuneType, int]
    """Number of overloaded runes of each type this game."""

    def count(self, rune_type: RuneType) -> int:
        return self.type_counts.get(rune_type, 0)

    def overloaded(self, rune_type: RuneType | None) -> int:
        if rune_type is None:
            return sum(self.overload_counts.values())
        return self.overload_counts.get(rune_type, 0)


@dataclass(frozen=True, slots=True)
class EffectDelta:
    """Contribution of a single effect to a resolved segment."""

    damage: int = 0
    healing: int = 0
    armor: int = 0
    arcane_dust: int = 0


# =============================================================================
# Effect Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class DamageEffect:
    """Flat bonus damage."""

    amount: int

    def resolve(self, context: SegmentContext) -> EffectDelta:
        return EffectDelta(damage=self.amount)


@dataclass(frozen=True, slots=True)
class HealingEffect:
    """Flat healing."""

    amount: int

    def resolve(self, context: SegmentContext) -> EffectDelta:
        return EffectDelta(healing=self.amount)


@dataclass(frozen=True, slots=True)
class ArmorEffect:
    """Flat armor gain."""

    amount: int

    def resolve(self, context: SegmentContext) -> EffectDelta:
        return EffectDelta(armor=self.amount)


@dataclass(frozen=True, slots=True)
class SynergyEffect:
    """Bonus damage for every rune of `synergy_type` in the segment."""

    amount: int

    synergy_type: RuneType

    def resolve(self, context: SegmentContext) -> EffectDelta:
        return EffectDelta(damage=self.amount * context.count(self.synergy_type))


@dataclass(frozen=True, slots=True)
class ArmorSynergyEffect:
    """Bonus armor for every rune of `synergy_type` in the segment."""

    amount: int

    synergy_type: RuneType

    def resolve(self, context: SegmentContext) -> EffectDelta:
        return EffectDelta(armor=self.amount * context.count(self.synergy_type))


@dataclass(frozen=True, slots=True)
class FortuneEffect:
    """Arcane dust gained on resolution."""

    amount: int

    def resolve(self, context: SegmentContext) -> EffectDelta:
        return EffectDelta(arcane_dust=self.amount)


@dataclass(frozen=True, slots=True)
class FragileEffect:
    """Bonus damage only if no rune of `fragile_type` is in the segment."""

    amount: int

    fragile_type: RuneType

    def resolve(self, context: SegmentContext) -> EffectDelta:
        if context.count(self.fragile_type) > 0:
            return EffectDelta()
        return EffectDelta(damage=self.amount)


@dataclass(frozen=True, slots=True)
class ChannelSynergyEffect:
    """
    Bonus damage for every overloaded rune of `synergy_type` this game.

    A `synergy_type` of None channels every overloaded rune.
    """

    amount: int

    synergy_type: RuneType | None = None

    def resolve(self, context: SegmentContext) -> EffectDelta:
        return EffectDelta(damage=self.amount * context.overloaded(self.synergy_type))


RuneEffect = (
    DamageEffect
    | HealingEffect
    | ArmorEffect
    | SynergyEffect
    | ArmorSynergyEffect
    | FortuneEffect
    | FragileEffect
    | ChannelSynergyEffect
)


# =============================================================================
# Effect Tables
# =============================================================================

BASE_RUNE_EFFECTS: dict[RuneType, tuple[RuneEffect, ...]] = {
    RuneType.FIRE: (),
    RuneType.FROST: (ArmorEffect(1),),
    RuneType.LIFE: (HealingEffect(1),),
    RuneType.VOID: (),
    RuneType.WIND: (),
    RuneType.LIGHTNING: (),
}
"""Effects every rune of a type carries, regardless of rarity."""

RARITY_SCALE: dict[Rarity, int] = {
    Rarity.COMMON: 0,
    Rarity.UNCOMMON: 1,
    Rarity.RARE: 2,
    Rarity.EPIC: 3,
}


def _rarity_bonus(rune_type: RuneType, scale: int) -> tuple[RuneEffect, ...]:
    match rune_type:
        case RuneType.FIRE:
            return (DamageEffect(scale),)
        case RuneType.FROST:
            return (ArmorEffect(scale),)
        case RuneType.LIFE:
            return (HealingEffect(2 * scale),)
        case RuneType.VOID:
            return (SynergyEffect(scale, RuneType.VOID),)
        case RuneType.WIND:
            return (FortuneEffect(scale),)
        case RuneType.LIGHTNING:
            return (ChannelSynergyEffect(scale, None),)


def _epic_bonus(rune_type: RuneType) -> tuple[RuneEffect, ...]:
    match rune_type:
        case RuneType.FIRE:
            return (FragileEffect(3, RuneType.FROST),)
        case RuneType.FROST:
            return (ArmorSynergyEffect(1, RuneType.FROST),)
        case _:
            return ()


def get_base_effects(rune_type: RuneType) -> tuple[RuneEffect, ...]:
    """Effects of a common rune of this type."""
    return BASE_RUNE_EFFECTS[rune_type]


def get_draft_effects(rune_type: RuneType, rarity: Rarity) -> tuple[RuneEffect, ...]:
    """Effects of a drafted rune: base effects plus a rarity-scaled bonus."""
    scale = RARITY_SCALE[rarity]
    if scale == 0:
        return get_base_effects(rune_type)

    effects = get_base_effects(rune_type) + _rarity_bonus(rune_type, scale)
    if rarity == Rarity.EPIC:
        effects += _epic_bonus(rune_type)
    return effects


# =============================================================================
# JSON Loading and Dumping
# =============================================================================


def parse_effect(effect_data: Mapping[str, Any]) -> RuneEffect:
    """Parse an effect dictionary into an effect object."""
    effect_type = effect_data["type"]
    amount = int(effect_data["amount"])

    match effect_type:
        case "Damage":
            return DamageEffect(amount)
        case "Healing":
            return HealingEffect(amount)
        case "Armor":
            return ArmorEffect(amount)
        case "Synergy":
            return SynergyEffect(amount, RuneType(effect_data["synergyType"]))
        case "ArmorSynergy":
            return ArmorSynergyEffect(amount, RuneType(effect_data["synergyType"]))
        case "Fortune":
            return FortuneEffect(amount)
        case "Fragile":
            return FragileEffect(amount, RuneType(effect_data["fragileType"]))
        case "ChannelSynergy":
            synergy = effect_data.get("synergyType")
            return ChannelSynergyEffect(amount, RuneType(synergy) if synergy else None)
        case _:
            raise ValueError(f"Unknown effect type: {effect_type}")


def effect_to_dict(effect: RuneEffect) -> dict[str, Any]:
    """Inverse of parse_effect."""
    match effect:
        case DamageEffect(amount=amount):
            return {"type": "Damage", "amount": amount}
        case HealingEffect(amount=amount):
            return {"type": "Healing", "amount": amount}
        case ArmorEffect(amount=amount):
            return {"type": "Armor", "amount": amount}
        case SynergyEffect(amount=amount, synergy_type=synergy_type):
            return {"type": "Synergy", "amount": amount, "synergyType": synergy_type.value}
        case ArmorSynergyEffect(amount=amount, synergy_type=synergy_type):
            return {"type": "ArmorSynergy", "amount": amount, "synergyType": synergy_type.value}
        case FortuneEffect(amount=amount):
            return {"type": "Fortune", "amount": amount}
        case FragileEffect(amount=amount, fragile_type=fragile_type):
            return {"type": "Fragile", "amount": amount, "fragileType": fragile_type.value}
        case ChannelSynergyEffect(amount=amount, synergy_type=synergy_type):
            return {
                "type": "ChannelSynergy",
                "amount": amount,
                "synergyType": synergy_type.value if synergy_type else None,
            }
    raise TypeError(f"Not a rune effect: {effect!r}")
