import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

NOTE_FILE_NAME = 'note.txt'
HISTORY_FILE_NAME = 'history.json'
DEFAULT_HISTORY_LIMIT = 100


@dataclass
class MemoEntry:
    id: str
    content: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MemoEntry':
        return cls(id=str(data['id']), content=data.get('content', ''), timestamp=int(data.get('timestamp', 0)))


class NoteStore(ABC):
    """
    Persistence collaborator for the note surface.
    Implementations raise on failure; callers decide whether to log or surface it.
    """

    @abstractmethod
    def load_note(self) -> str:
        """Return the current note text ('' when there is none)."""
        pass

    @abstractmethod
    def save_note(self, content: str) -> None:
        """Overwrite the current note without touching history."""
        pass

    @abstractmethod
    def save_note_to_history(self, content: str) -> None:
        """Save the current note and record it as the current memo's latest revision."""
        pass

    @abstractmethod
    def create_new_memo(self) -> str:
        """Start a new memo and return its id."""
        pass


def _timestamp() -> int:
    return int(time.time())


class FileNoteStore(NoteStore):
    """
    Stores the note in note.txt and memo revisions in history.json (newest first).
    """

    def __init__(self, data_dir: Path, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.data_dir = Path(data_dir)
        self.history_limit = history_limit
        self.current_memo_id: Optional[str] = None

    @property
    def note_path(self) -> Path:
        return self.data_dir / NOTE_FILE_NAME

    @property
    def history_path(self) -> Path:
        return self.data_dir / HISTORY_FILE_NAME

    def load_note(self) -> str:
        if not self.note_path.exists():
            return ''
        with open(self.note_path, 'r', encoding='utf-8') as f:
            return f.read()

    def save_note(self, content: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.note_path, 'w', encoding='utf-8') as f:
            f.write(content)
        logger.debug(f"Note saved ({len(content)} chars)")

    def save_note_to_history(self, content: str) -> None:
        self.save_note(content)

        if self.current_memo_id is None:
            self.current_memo_id = str(_timestamp())

        if content.strip():
            self._upsert_history(self.current_memo_id, content)

    def create_new_memo(self) -> str:
        base_id = str(_timestamp())
        # Memos created within the same second still need distinct ids
        taken = {e.id for e in self.get_history()}
        taken.add(self.current_memo_id)
        new_id = base_id
        suffix = 1
        while new_id in taken:
            new_id = f"{base_id}-{suffix}"
            suffix += 1
        self.current_memo_id = new_id
        self.save_note('')
        logger.info(f"New memo started: {new_id}")
        return new_id

    def get_history(self) -> List[MemoEntry]:
        if not self.history_path.exists():
            return []
        with open(self.history_path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
        return [MemoEntry.from_dict(item) for item in raw]

    def _write_history(self, entries: List[MemoEntry]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.history_path, 'w', encoding='utf-8') as f:
            json.dump([e.to_dict() for e in entries], f, ensure_ascii=False, indent=2)

    def _upsert_history(self, memo_id: str, content: str) -> None:
        entries = self.get_history()
        now = _timestamp()

        existing = next((e for e in entries if e.id == memo_id), None)
        if existing is not None:
            existing.content = content
            existing.timestamp = now
        else:
            entries.insert(0, MemoEntry(id=memo_id, content=content, timestamp=now))

        if len(entries) > self.history_limit:
            entries = entries[:self.history_limit]

        self._write_history(entries)
        logger.debug(f"History updated for memo {memo_id} ({len(entries)} entries)")
