"""Device-local record of reactions this device has already made."""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from ..models.post import Polarity, TargetType

logger = logging.getLogger(__name__)


def ledger_key(target_type: TargetType, target_id: int) -> str:
    """Storage key for a target, namespaced by type.

    Post 5 and reply 5 map to ``reaction_post_5`` and ``reaction_reply_5``.
    """
    return f"reaction_{TargetType(target_type).value}_{target_id}"


class LedgerBackend(ABC):
    """Persistence for ledger entries."""

    @abstractmethod
    def load(self) -> Dict[str, str]:
        """Return every stored entry, key -> polarity value."""
        pass

    @abstractmethod
    def save(self, entries: Dict[str, str]) -> None:
        """Persist the full set of entries."""
        pass


class MemoryLedgerBackend(LedgerBackend):
    """Keeps entries for the life of the process only."""

    def __init__(self, entries: Optional[Dict[str, str]] = None):
        self.entries: Dict[str, str] = dict(entries or {})

    def load(self) -> Dict[str, str]:
        return dict(self.entries)

    def save(self, entries: Dict[str, str]) -> None:
        self.entries = dict(entries)


class JsonFileLedgerBackend(LedgerBackend):
    """Keeps entries in a JSON file so they survive restarts."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read reaction ledger {self.path}, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Reaction ledger {self.path} is not a JSON object, starting empty")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def save(self, entries: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write beside the target and swap in, so a crash never leaves half a file
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".ledger-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class ReactionLedger:
    """Which targets this device has reacted to, and with which polarity.

    An in-process map backed by a pluggable persistence backend. Entries are
    written once and only removed by an explicit clear. This is the sole
    record of "already reacted"; the server keeps no per-device identity.
    """

    def __init__(self, backend: Optional[LedgerBackend] = None):
        self.backend = backend or MemoryLedgerBackend()
        self._entries: Dict[str, Polarity] = {}
        for key, value in self.backend.load().items():
            try:
                self._entries[key] = Polarity(value)
            except ValueError:
                logger.warning(f"Ignoring ledger entry {key} with unknown polarity {value!r}")

    def get(self, target_type: TargetType, target_id: int) -> Optional[Polarity]:
        return self._entries.get(ledger_key(target_type, target_id))

    def set(self, target_type: TargetType, target_id: int, polarity: Polarity) -> bool:
        """Record a reaction unless one is already recorded.

        Returns:
            True if the entry was written, False if one already existed
        """
        key = ledger_key(target_type, target_id)
        if key in self._entries:
            return False
        entries = dict(self._entries)
        entries[key] = Polarity(polarity)
        # Saved before the in-memory map changes, so a failed save records nothing
        self._persist(entries)
        self._entries = entries
        return True

    def clear(self, target_type: TargetType, target_id: int) -> None:
        key = ledger_key(target_type, target_id)
        if key not in self._entries:
            return
        entries = dict(self._entries)
        del entries[key]
        self._persist(entries)
        self._entries = entries

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _persist(self, entries: Dict[str, Polarity]) -> None:
        self.backend.save({key: polarity.value for key, polarity in entries.items()})
