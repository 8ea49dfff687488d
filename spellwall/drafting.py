"""
Drafting runes from runeforges and the center pool.

Drafting takes every rune of one type from a source. When the source is a
runeforge, the rest of its runes move to the center pool. The source is
snapshotted so the selection can be cancelled exactly.
"""

from __future__ import annotations

from dataclasses import replace

from spellwall.types import RuneType, RuneforgeId, SourceId, CENTER_SOURCE_ID
from spellwall.models import (
    Rune,
    SoloRunState,
    DraftSource,
    RuneforgeDraftSource,
    CenterDraftSource,
    rune_ids,
)


def draft_from_source(
    state: SoloRunState,
    source_id: SourceId,
    rune_type: RuneType,
) -> tuple[SoloRunState, tuple[Rune, ...], DraftSource]:
    """
    Take all runes of `rune_type` from a source.

    The draft must already be validated with rules.validate_draft.

    Returns:
        Tuple of (new_state, selected_runes, draft_source)
    """
    if source_id == CENTER_SOURCE_ID:
        original = state.center_pool
        selected = tuple(r for r in original if r.rune_type == rune_type)
        remaining = tuple(r for r in original if r.rune_type != rune_type)
        source: DraftSource = CenterDraftSource(original_runes=original)
        new_state = replace(
            state,
            center_pool=remaining,
            selected_runes=selected,
            draft_source=source,
        )
        return new_state, selected, source

    forge = state.get_runeforge(RuneforgeId(source_id))
    if forge is None:
        raise ValueError(f"Unknown runeforge: {source_id}")

    selected = tuple(r for r in forge.runes if r.rune_type == rune_type)
    moved = tuple(r for r in forge.runes if r.rune_type != rune_type)
    source = RuneforgeDraftSource(
        runeforge_id=forge.id,
        original_runes=forge.runes,
        moved_to_center=moved,
    )
    new_state = replace(
        state.with_runeforge(forge.with_runes(())),
        center_pool=(*state.center_pool, *moved),
        selected_runes=selected,
        draft_source=source,
    )
    return new_state, selected, source


def cancel_selection(state: SoloRunState) -> SoloRunState:
    """
    Return the in-flight selection to where it came from.

    The source gets back exactly the runes it had, in the same order. Runes
    a runeforge draft pushed to the center are taken back out. No-op when
    nothing is selected.
    """
    source = state.draft_source
    if source is None:
        return state

    match source:
        case RuneforgeDraftSource(runeforge_id=forge_id, original_runes=original, moved_to_center=moved):
            forge = state.get_runeforge(forge_id)
            if forge is None:
                raise ValueError(f"Unknown runeforge: {forge_id}")
            moved_ids = rune_ids(moved)
            center = tuple(r for r in state.center_pool if r.id not in moved_ids)
            restored = replace(state.with_runeforge(forge.with_runes(original)), center_pool=center)
        case CenterDraftSource(original_runes=original):
            restored = replace(state, center_pool=original)

    return replace(restored, selected_runes=(), draft_source=None)


def source_id_of(source: DraftSource) -> SourceId:
    match source:
        case RuneforgeDraftSource(runeforge_id=forge_id):
            return SourceId(forge_id)
        case CenterDraftSource():
            return CENTER_SOURCE_ID
