"""JSON snapshot persistence for reminders.

Every save rewrites the whole file. The snapshot is written to a temporary
sibling and renamed over the target, so a crash mid-write never leaves a
truncated file behind.
"""

import json
import threading
from pathlib import Path
from typing import Union

from logger import logger
from .errors import StoreError
from .models import Reminder


class ReminderStore:
    """Durable mapping of reminder id -> Reminder."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._write_lock = threading.Lock()

    def load(self) -> dict[int, Reminder]:
        """Load all reminders.

        Returns:
            Reminders keyed by id; empty if the file does not exist yet

        Raises:
            StoreError: File unreadable or malformed
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info(f"No reminder store at {self.path}, starting empty")
            return {}
        except OSError as e:
            raise StoreError(f"Failed to read {self.path}: {e}") from e

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("top level is not an object")
            reminders = {
                int(reminder_id): Reminder.from_record(reminder_id, record)
                for reminder_id, record in data.items()
            }
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise StoreError(f"Corrupt reminder store {self.path}: {e}") from e

        logger.debug(f"Loaded {len(reminders)} reminders from {self.path}")
        return reminders

    def save(self, reminders: dict[int, Reminder]) -> None:
        """Overwrite the store with a full snapshot.

        Raises:
            StoreError: Snapshot could not be written
        """
        snapshot = {
            str(reminder_id): reminders[reminder_id].to_record()
            for reminder_id in sorted(reminders)
        }
        payload = json.dumps(snapshot, indent=2, ensure_ascii=False)

        with self._write_lock:
            tmp_path = self.path.with_name(self.path.name + ".tmp")
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path.write_text(payload, encoding="utf-8")
                tmp_path.replace(self.path)
            except OSError as e:
                raise StoreError(f"Failed to write {self.path}: {e}") from e

        logger.debug(f"Saved {len(snapshot)} reminders to {self.path}")


__all__ = ["ReminderStore"]
