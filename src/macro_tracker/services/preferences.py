"""Locally persisted display preferences."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

SHOW_REMAINING_KEY = "showRemaining"

_logger = logging.getLogger(__name__)


@dataclass
class DisplayPreferences:
    """JSON-file store for the "show remaining vs. consumed" toggle."""

    path: Path

    def show_remaining(self) -> bool:
        """Return the stored toggle, defaulting to showing consumed."""
        return self._load().get(SHOW_REMAINING_KEY) is True

    def set_show_remaining(self, value: bool) -> None:
        """Persist the toggle."""
        data = self._load()
        data[SHOW_REMAINING_KEY] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def toggle_show_remaining(self) -> bool:
        """Flip the toggle and return the new value."""
        value = not self.show_remaining()
        self.set_show_remaining(value)
        return value

    def _load(self) -> dict[str, object]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            _logger.warning("Ignoring unreadable preferences file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}
