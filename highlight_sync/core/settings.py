from __future__ import annotations

import os
from dataclasses import dataclass

from highlight_sync.providers.content_types import SaveType

DEFAULT_DB_PATH = "~/.local/share/highlight-sync/state.db"


@dataclass(frozen=True)
class Settings:
    readwise_token: str
    save_type: SaveType
    store_backend: str
    database: str
    group: str
    db_path: str
    index_pause_seconds: float
    verbose: bool

    @staticmethod
    def from_env() -> "Settings":
        def _b(name: str, default: str) -> bool:
            return os.getenv(name, default).strip() in ("1", "true", "True", "yes", "YES")

        def _f(name: str, default: str) -> float:
            raw = os.getenv(name, default).strip()
            try:
                return float(raw)
            except ValueError:
                raise ValueError(f"{name} must be a number, got {raw!r}") from None

        return Settings(
            readwise_token=os.getenv("READWISE_TOKEN", "").strip(),
            save_type=SaveType.parse(os.getenv("SAVE_TYPE", "markdown")),
            store_backend=os.getenv("STORE_BACKEND", "devonthink").strip().lower(),
            database=os.getenv("DT_DATABASE", "global").strip(),
            group=os.getenv("DT_GROUP", "inbox").strip(),
            db_path=os.path.expanduser(os.getenv("DB_PATH", DEFAULT_DB_PATH).strip()),
            index_pause_seconds=_f("INDEX_PAUSE_SECONDS", "5"),
            verbose=_b("VERBOSE", "0"),
        )
