"""Persistent player balance for Rug Pull.

Stores a single number under a fixed key in ~/.streamdeck-arcade/rugpull.json.
"""

import json
import os
import sys
import threading

BALANCE_KEY = "playerBalance"
DEFAULT_SAVE_FILE = os.path.expanduser("~/.streamdeck-arcade/rugpull.json")


class BalanceStore:
    """JSON-file key-value store holding only the balance."""

    def __init__(self, path: str = DEFAULT_SAVE_FILE):
        self.path = os.path.expanduser(path)
        self._lock = threading.Lock()

    def _read(self):
        try:
            with open(self.path) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError):
            return None

    def _load_all(self) -> dict:
        data = self._read()
        return data if isinstance(data, dict) else {}

    def load(self) -> float | None:
        """Load the saved balance. Returns None if no record."""
        data = self._read()
        # a bare number is the balance itself
        if isinstance(data, (int, float)) and not isinstance(data, bool):
            return float(data)
        value = data.get(BALANCE_KEY) if isinstance(data, dict) else None
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    def save(self, balance: float) -> None:
        with self._lock:
            try:
                os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
                data = self._load_all()
                data[BALANCE_KEY] = balance
                with open(self.path, "w") as f:
                    json.dump(data, f, indent=2)
            except OSError as e:
                print(f"Could not save balance to {self.path}: {e}", file=sys.stderr)


class MemoryStore:
    """In-process store for tests."""

    def __init__(self, balance: float | None = None):
        self.value = balance
        self.writes = 0

    def load(self) -> float | None:
        return self.value

    def save(self, balance: float) -> None:
        self.value = balance
        self.writes += 1
