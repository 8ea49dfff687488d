"""
Artefact collection: owned artefacts, the run selection and arcane dust.

The collection lives outside any single run. Purchases spend arcane dust;
selected artefacts become the active artefacts of the next run.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from spellwall.types import ArtefactId, ErrorKind, MAX_SELECTED_ARTEFACTS
from spellwall.artefacts import ARTEFACTS
from spellwall.rules import ValidationResult, VALID, invalid
from spellwall.events import (
    GameEvent,
    ArtefactPurchasedEvent,
    ArtefactSelectionChangedEvent,
    ActionInvalidEvent,
)


@dataclass(frozen=True, slots=True)
class ArtefactCollection:
    """Persistent meta-progression state."""

    owned: frozenset[ArtefactId] = frozenset()

    selected: tuple[ArtefactId, ...] = ()
    """Selection order is kept so truncation drops the newest."""

    arcane_dust: int = 0

    def active_artefacts(self) -> frozenset[ArtefactId]:
        return frozenset(self.selected)

    def with_dust(self, arcane_dust: int) -> ArtefactCollection:
        return replace(self, arcane_dust=max(0, arcane_dust))


# =============================================================================
# Validation
# =============================================================================


def validate_purchase(collection: ArtefactCollection, artefact_id: ArtefactId) -> ValidationResult:
    artefact = ARTEFACTS.get(artefact_id)
    if artefact is None:
        return invalid(ErrorKind.INVALID_SELECTION, f"Unknown artefact: {artefact_id}")
    if artefact_id in collection.owned:
        return invalid(ErrorKind.INVALID_SELECTION, f"{artefact.name} is already owned")
    if collection.arcane_dust < artefact.cost:
        return invalid(
            ErrorKind.INSUFFICIENT_FUNDS,
            f"{artefact.name} costs {artefact.cost}, have {collection.arcane_dust}",
        )
    return VALID


def validate_selection(collection: ArtefactCollection, artefact_id: ArtefactId) -> ValidationResult:
    if artefact_id not in collection.owned:
        return invalid(ErrorKind.INVALID_SELECTION, f"{artefact_id.value} is not owned")
    if artefact_id in collection.selected:
        return invalid(ErrorKind.INVALID_SELECTION, f"{artefact_id.value} is already selected")
    if len(collection.selected) >= MAX_SELECTED_ARTEFACTS:
        return invalid(
            ErrorKind.INVALID_SELECTION,
            f"At most {MAX_SELECTED_ARTEFACTS} artefacts can be selected",
        )
    return VALID


# =============================================================================
# Transitions
# =============================================================================


def buy_artefact(
    collection: ArtefactCollection,
    artefact_id: ArtefactId,
) -> tuple[ArtefactCollection, list[GameEvent]]:
    validation = validate_purchase(collection, artefact_id)
    if not validation.valid:
        return collection, [ActionInvalidEvent(kind=validation.kind, reason=validation.reason)]

    cost = ARTEFACTS[artefact_id].cost
    new_collection = replace(
        collection,
        owned=collection.owned | {artefact_id},
        arcane_dust=collection.arcane_dust - cost,
    )
    return new_collection, [ArtefactPurchasedEvent(artefact_id=artefact_id, cost=cost)]


def select_artefact(
    collection: ArtefactCollection,
    artefact_id: ArtefactId,
) -> tuple[ArtefactCollection, list[GameEvent]]:
    validation = validate_selection(collection, artefact_id)
    if not validation.valid:
        return collection, [ActionInvalidEvent(kind=validation.kind, reason=validation.reason)]

    new_collection = replace(collection, selected=(*collection.selected, artefact_id))
    return new_collection, [ArtefactSelectionChangedEvent(selected=new_collection.selected)]


def unselect_artefact(
    collection: ArtefactCollection,
    artefact_id: ArtefactId,
) -> tuple[ArtefactCollection, list[GameEvent]]:
    if artefact_id not in collection.selected:
        return collection, [
            ActionInvalidEvent(kind=ErrorKind.INVALID_SELECTION, reason=f"{artefact_id.value} is not selected")
        ]

    new_collection = replace(
        collection,
        selected=tuple(a for a in collection.selected if a != artefact_id),
    )
    return new_collection, [ArtefactSelectionChangedEvent(selected=new_collection.selected)]
