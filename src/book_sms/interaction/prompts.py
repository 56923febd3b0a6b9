from langchain_core.prompts import PromptTemplate


CLASSIFICATION_SYSTEM_PROMPT = """
You classify text messages sent to a personal book-tracking assistant.

Intents:
- update_progress: reading progress (page_number or percentage, optional book_title)
- start_book / finish_book / book_details / similar_books: one book (book_title)
- get_status: progress on the current book
- list_reading: books currently being read
- search_book: look up books (search_term)
- filter_books / unread_books / ratings_query: list books by criteria
  (genre, author, read_status, min_pages, max_pages, min_rating, max_rating,
  year, month, sort_by, sort_order, limit)
- compare_books: two books (book_titles, comparison_type)
- time_query: books read in a period (timeframe, year, month)
- add_book: new book (title, author, genre, pages)
- recommend: what to read next (genre)
- get_stats: reading counts
- help: usage help (topic)
- pronoun_reference / list_reference: "it", "the second one"
- next_page / previous_page: paging through results
- unknown: anything else

Legal values:
- read_status: unread, reading, completed, dnf
- sort_by: rating, pages, date, title, author
- sort_order: asc, desc
- comparison_type: pages, rating, date_read

Reply with JSON only, no prose:
{"intent": "<intent>", "confidence": <0.0-1.0>, "parameters": {...}}
"""

CLASSIFICATION_USER_PROMPT = PromptTemplate.from_template(
"""
{context_block}Message: {message}
"""
)

CONTEXT_BLOCK = PromptTemplate.from_template(
"""Last book mentioned: {last_book_title}
"""
)

PENDING_INTENT_BLOCK = PromptTemplate.from_template(
"""The previous reply asked for missing details of a {last_intent} request.
This message probably supplies them; keep intent {last_intent} if it fits.
"""
)
