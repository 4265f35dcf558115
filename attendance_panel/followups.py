from __future__ import annotations

from typing import Container, Dict


class FollowUps:
    """Admin notes and contacted flags per student key (in memory only).

    Updates for keys the caller does not know about are ignored.
    """

    def __init__(self) -> None:
        self.notes: Dict[str, str] = {}
        self.contacted: Dict[str, bool] = {}

    def note(self, key: str) -> str:
        return self.notes.get(key, "")

    def is_contacted(self, key: str) -> bool:
        return bool(self.contacted.get(key, False))

    def set_note(self, key: str, text: str, known: Container[str]) -> bool:
        if key not in known:
            return False
        self.notes[key] = text
        return True

    def toggle_contacted(self, key: str, known: Container[str]) -> bool:
        if key not in known:
            return False
        self.contacted[key] = not self.contacted.get(key, False)
        return True

    def contacted_count(self) -> int:
        return sum(1 for v in self.contacted.values() if v)

    def notes_count(self) -> int:
        return sum(1 for v in self.notes.values() if v and v.strip())
