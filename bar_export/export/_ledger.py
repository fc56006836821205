"""In-memory set of bar keys already present in the output file."""

from __future__ import annotations

import logging
from pathlib import Path

log = logging.getLogger(__name__)


class DedupLedger:
    """Keys (bar open times) already written for the current run.

    Seeded once from whatever the output file already holds, then updated
    after every successful append. Never persisted on its own: the output
    file *is* the durable ledger.
    """

    def __init__(self) -> None:
        self._keys: set[str] = set()

    # -- Public API --------------------------------------------------------

    def seed(self, path: Path, delimiter: str = ";") -> int:
        """Load keys from an existing output file.  Returns the key count.

        A missing or unreadable file leaves the ledger empty; read errors
        are logged, never raised.
        """
        path = Path(path)
        if not path.exists():
            return 0

        keys: set[str] = set()
        skipped = 0
        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                next(f, None)  # header
                for lineno, raw in enumerate(f, start=2):
                    # a last line without its newline still carries its key
                    line = raw.rstrip("\r\n")
                    key, sep, _ = line.partition(delimiter)
                    if not sep or not key:
                        skipped += 1
                        log.warning("Skipping malformed line %d in %s", lineno, path)
                        continue
                    keys.add(key)
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("Could not read existing file %s (%s); starting with an empty ledger", path, exc)
            self._keys.clear()
            return 0

        self._keys.update(keys)
        log.info(
            "Ledger   : %s keys from %s (%d malformed lines skipped)",
            f"{len(self._keys):,}", path.name, skipped,
        )
        return len(self._keys)

    def contains(self, key: str) -> bool:
        return key in self._keys

    def record(self, key: str) -> None:
        self._keys.add(key)

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)
