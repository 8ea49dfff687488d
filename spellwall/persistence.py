"""
Persistence of meta-progression and saved runs.

Everything is stored as strings under fixed keys in a key-value store.
Reads are forgiving: malformed or missing values fall back to defaults.
Writes never raise; storage failures are logged and the value passed in
is returned so callers can keep going.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from spellwall.types import ArtefactId, MAX_SELECTED_ARTEFACTS
from spellwall.models import SoloRunState
from spellwall.serialization import state_to_dict, state_from_dict

logger = logging.getLogger(__name__)

ARCANE_DUST_KEY = "spellwall-arcane-dust"
OWNED_ARTEFACTS_KEY = "spellwall-owned-artefacts"
SELECTED_ARTEFACTS_KEY = "spellwall-selected-artefacts"
SOLO_STATE_KEY = "spellwall-solo-state"
LONGEST_RUN_KEY = "spellwall-longest-run"


# =============================================================================
# Storage Backends
# =============================================================================


class KeyValueStore(Protocol):
    """Minimal string key-value storage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryStore:
    """Dictionary-backed store for tests and headless runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """
    Store backed by a single JSON object on disk.

    The file is read on every access and rewritten on every change.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        data = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


_READ_ERRORS = (OSError, json.JSONDecodeError, ValueError, KeyError, TypeError)
_WRITE_ERRORS = (OSError, ValueError, TypeError)


def _safe_get(store: KeyValueStore, key: str) -> str | None:
    try:
        return store.get(key)
    except _READ_ERRORS as e:
        logger.error(f"Failed to read {key}: {e}")
        return None


def _safe_set(store: KeyValueStore, key: str, value: str) -> None:
    try:
        store.set(key, value)
    except _WRITE_ERRORS as e:
        logger.error(f"Failed to save {key}: {e}")


# =============================================================================
# Arcane Dust
# =============================================================================


def get_arcane_dust(store: KeyValueStore) -> int:
    """Stored dust, 0 when missing, malformed or negative."""
    raw = _safe_get(store, ARCANE_DUST_KEY)
    if raw is None:
        return 0
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring malformed arcane dust value: {raw!r}")
        return 0
    return value if value >= 0 else 0


def set_arcane_dust(store: KeyValueStore, amount: int) -> int:
    amount = max(0, amount)
    _safe_set(store, ARCANE_DUST_KEY, str(amount))
    return amount


def add_arcane_dust(store: KeyValueStore, amount: int) -> int:
    return set_arcane_dust(store, get_arcane_dust(store) + amount)


# =============================================================================
# Artefacts
# =============================================================================


def _load_artefact_list(store: KeyValueStore, key: str) -> list[ArtefactId]:
    raw = _safe_get(store, key)
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Ignoring malformed artefact list under {key}")
        return []
    if not isinstance(parsed, list):
        return []

    known = {a.value for a in ArtefactId}
    result: list[ArtefactId] = []
    for value in parsed:
        if value in known and ArtefactId(value) not in result:
            result.append(ArtefactId(value))
    return result


def get_owned_artefacts(store: KeyValueStore) -> list[ArtefactId]:
    return _load_artefact_list(store, OWNED_ARTEFACTS_KEY)


def save_owned_artefacts(store: KeyValueStore, artefact_ids: list[ArtefactId]) -> list[ArtefactId]:
    _safe_set(store, OWNED_ARTEFACTS_KEY, json.dumps([a.value for a in artefact_ids]))
    return artefact_ids


def add_owned_artefact(store: KeyValueStore, artefact_id: ArtefactId) -> list[ArtefactId]:
    owned = get_owned_artefacts(store)
    if artefact_id in owned:
        return owned
    return save_owned_artefacts(store, [*owned, artefact_id])


def get_selected_artefacts(store: KeyValueStore) -> list[ArtefactId]:
    return _load_artefact_list(store, SELECTED_ARTEFACTS_KEY)[:MAX_SELECTED_ARTEFACTS]


def save_selected_artefacts(store: KeyValueStore, artefact_ids: list[ArtefactId]) -> list[ArtefactId]:
    """Save the selection, truncated to the maximum allowed."""
    normalized = list(artefact_ids)[:MAX_SELECTED_ARTEFACTS]
    _safe_set(store, SELECTED_ARTEFACTS_KEY, json.dumps([a.value for a in normalized]))
    return normalized


# =============================================================================
# Solo Run
# =============================================================================


def save_solo_state(store: KeyValueStore, state: SoloRunState) -> None:
    _safe_set(store, SOLO_STATE_KEY, json.dumps(state_to_dict(state)))


def load_solo_state(store: KeyValueStore) -> SoloRunState | None:
    raw = _safe_get(store, SOLO_STATE_KEY)
    if not raw:
        return None
    try:
        return state_from_dict(json.loads(raw))
    except (json.JSONDecodeError, ValueError, KeyError, TypeError) as e:
        logger.error(f"Failed to parse saved solo state: {e}")
        return None


def has_saved_solo_state(store: KeyValueStore) -> bool:
    return bool(_safe_get(store, SOLO_STATE_KEY))


def clear_solo_state(store: KeyValueStore) -> None:
    try:
        store.remove(SOLO_STATE_KEY)
    except _WRITE_ERRORS as e:
        logger.error(f"Failed to clear solo state: {e}")


def get_longest_run(store: KeyValueStore) -> int:
    raw = _safe_get(store, LONGEST_RUN_KEY)
    if raw is None:
        return 0
    try:
        return max(0, int(raw))
    except ValueError:
        return 0


def update_longest_run(store: KeyValueStore, game_index: int) -> int:
    """Record `game_index` if it beats the stored best. Returns the best."""
    best = max(get_longest_run(store), game_index)
    _safe_set(store, LONGEST_RUN_KEY, str(best))
    return best
