"""
Record store: per-user persistence of trades and prop accounts.

Callers receive a repository and pass the loaded collections into the
engines; nothing in the computation modules touches storage. Loading never
raises: a missing, unreadable or invalid collection is treated as empty.
"""
import hashlib
import json
import logging
from pathlib import Path
from typing import List, Optional, Protocol

from pydantic import TypeAdapter, ValidationError

from tradejournal.types import PropAccount, Trade

__all__ = ["JournalRepository", "InMemoryRepository", "JsonFileRepository"]

log = logging.getLogger(__name__)

_TRADES = TypeAdapter(List[Trade])
_ACCOUNTS = TypeAdapter(List[PropAccount])


class JournalRepository(Protocol):
    def load_trades(self) -> List[Trade]: ...

    def load_accounts(self) -> List[PropAccount]: ...

    def save_trades(self, trades: List[Trade]) -> None: ...

    def save_accounts(self, accounts: List[PropAccount]) -> None: ...


class InMemoryRepository:
    """Keeps collections in memory; used for previews and tests."""

    def __init__(self, trades: Optional[List[Trade]] = None, accounts: Optional[List[PropAccount]] = None):
        self._trades = list(trades or [])
        self._accounts = list(accounts or [])

    def load_trades(self) -> List[Trade]:
        return list(self._trades)

    def load_accounts(self) -> List[PropAccount]:
        return list(self._accounts)

    def save_trades(self, trades: List[Trade]) -> None:
        self._trades = list(trades)

    def save_accounts(self, accounts: List[PropAccount]) -> None:
        self._accounts = list(accounts)


def _safe_user_key(user: str) -> str:
    """
    Turns a user name or e-mail into a filename-safe key.

    The readable slug is lossy, so a short digest of the exact name is
    appended; distinct names never share a journal.
    """
    name = user.strip()
    slug = name.lower().replace(" ", "_").replace("@", "_at_")
    slug = "".join(c for c in slug if c.isalnum() or c in "_.-")
    digest = hashlib.sha1(name.encode("utf-8")).hexdigest()[:8]
    return f"{slug}-{digest}"


class JsonFileRepository:
    """
    Stores each user's trades and accounts as two JSON files in a data directory.

    Files use the camelCase record layout, so exports from the browser
    journal can be dropped in as-is.
    """

    def __init__(self, data_dir: Path, user: str):
        self.data_dir = Path(data_dir)
        self.user = user
        key = _safe_user_key(user)
        self.trades_path = self.data_dir / f"{key}_trades.json"
        self.accounts_path = self.data_dir / f"{key}_accounts.json"

    def _load(self, path: Path, adapter: TypeAdapter) -> list:
        if not path.is_file():
            log.debug(f"No stored collection at {path}; starting empty.")
            return []
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return adapter.validate_python(raw)
        except (OSError, ValueError, RecursionError, ValidationError) as e:
            log.warning(f"Ignoring unreadable collection {path}: {e}")
            return []

    def _save(self, path: Path, records: list, adapter: TypeAdapter) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(adapter.dump_json(records, by_alias=True, indent=2))
            log.debug(f"Saved {len(records)} records to {path}")
        except OSError as e:
            log.error(f"Failed to save {path}: {e}")

    def load_trades(self) -> List[Trade]:
        return self._load(self.trades_path, _TRADES)

    def load_accounts(self) -> List[PropAccount]:
        return self._load(self.accounts_path, _ACCOUNTS)

    def save_trades(self, trades: List[Trade]) -> None:
        self._save(self.trades_path, trades, _TRADES)

    def save_accounts(self, accounts: List[PropAccount]) -> None:
        self._save(self.accounts_path, accounts, _ACCOUNTS)
