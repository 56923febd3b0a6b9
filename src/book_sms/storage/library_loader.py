import json
import re
from typing import List, Optional

READ_ALIASES = {
    "read": "Read",
    "finished": "Read",
    "completed": "Read",
    "reading": "Reading",
    "in progress": "Reading",
    "dnf": "DNF",
    "did not finish": "DNF",
    "unread": None,
    "": None,
}


class BookLibraryLoader:
    """
    Loads and normalizes book records from a JSON file.

    Accepts either a list of books or {"books": [...]}.
    """
    def __init__(self, json_path: str):
        self.json_path = json_path

    def load_books(self) -> List[dict]:
        with open(self.json_path, encoding="utf-8") as f:
            payload = json.load(f)

        rows = payload.get("books", []) if isinstance(payload, dict) else payload
        books: List[dict] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            book = self._parse_row(row)
            if book:
                books.append(book)
        return books

    def _parse_row(self, row: dict) -> Optional[dict]:
        title = self._clean_text(row.get("title"))
        if not title:
            return None

        return {
            "id": self._parse_int(row.get("id")),
            "title": title,
            "author": self._clean_text(row.get("author")),
            "genre": self._clean_text(row.get("genre")),
            "pages": self._parse_int(row.get("pages")),
            "rating": self._parse_float(row.get("rating")),
            "read": self._parse_read(row.get("read")),
            "current_page": self._parse_int(row.get("current_page")),
            "date_started": self._clean_text(row.get("date_started")),
            "date_finished": self._clean_text(row.get("date_finished")),
            "created_at": self._clean_text(row.get("created_at")),
        }

    def _clean_text(self, value) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value if value else None

    def _parse_int(self, value) -> Optional[int]:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if value is None:
            return None
        digits = re.findall(r"\d+", str(value))
        return int(digits[0]) if digits else None

    def _parse_float(self, value) -> Optional[float]:
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    def _parse_read(self, value) -> Optional[str]:
        if value is None:
            return None
        return READ_ALIASES.get(str(value).strip().lower())
