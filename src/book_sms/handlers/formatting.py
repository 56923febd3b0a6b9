"""
SMS-friendly text formatting for book replies.
"""
from typing import Optional


def truncate(text: Optional[str], max_length: int) -> str:
    """Shorten text to max_length, ending with '...' when cut."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - 3)].rstrip() + "..."


def format_rating(rating) -> str:
    if rating is None:
        return ""
    return f" ★{rating:g}" if isinstance(rating, (int, float)) else f" ★{rating}"


def progress_percent(book: dict) -> Optional[int]:
    pages = book.get("pages")
    current = book.get("current_page")
    if not pages or current is None:
        return None
    return round(min(current / pages * 100, 100))


def format_book_line(index: int, book: dict) -> str:
    """
    One numbered list line: `2. The Hobbit ★4 - J.R.R. Tolkien`

    :param index: 1-based position shown to the user
    :param book: Book dict
    """
    status = {"Read": "✓", "Reading": "📖"}.get(book.get("read"), "")
    author = f" - {truncate(book.get('author'), 18)}" if book.get("author") else ""
    return f"{index}. {status}{truncate(book['title'], 30)}{format_rating(book.get('rating'))}{author}"


def format_book_summary(book: dict) -> str:
    """`"Dune" by Frank Herbert - 120/412 pages (29%)`"""
    author = f" by {book['author']}" if book.get("author") else ""
    pages = ""
    if book.get("pages") and book.get("current_page") is not None:
        pages = f" - {book['current_page']}/{book['pages']} pages"
    percent = progress_percent(book)
    progress = f" ({percent}%)" if percent else ""
    return f'"{book["title"]}"{author}{pages}{progress}'
