"""
Tests for the natural-language filter parser.
"""
import pytest

from book_sms.query import ParsedFilters, parse_filters


class TestParseFilters:
    """Tests for parse_filters."""

    def test_unread_fantasy_under_300_pages(self):
        """Test the canonical combined query: every criterion survives."""
        filters = parse_filters("Unread fantasy under 300 pages")

        assert filters.to_dict() == {"read_status": "unread", "genre": "Fantasy", "max_pages": 300}

    def test_pure_function(self):
        """Test that the same input always gives the same output."""
        text = "top 3 highest rated sci-fi books over 400 pages read in 2023"

        assert parse_filters(text) == parse_filters(text)

    def test_empty_input(self):
        assert parse_filters("").is_empty()
        assert parse_filters("   ").is_empty()

    @pytest.mark.parametrize("text,status", [
        ("books I haven't read", "unread"),
        ("books I have not read yet", "unread"),
        ("books I did not finish", "dnf"),
        ("what am I currently reading", "reading"),
        ("books I've read", "completed"),
        ("finished books", "completed"),
    ])
    def test_read_status_order(self, text, status):
        """Test that negated phrasings win over the bare 'read'."""
        assert parse_filters(text).read_status == status

    def test_genre_synonyms(self):
        assert parse_filters("sci-fi").genre == "Science Fiction"
        assert parse_filters("historical fiction").genre == "Historical Fiction"
        assert parse_filters("short mysteries").genre == "Mystery"

    def test_short_and_long_defaults(self):
        """Test the page defaults for 'short' and 'long'."""
        assert parse_filters("short books").max_pages == 200
        assert parse_filters("long books").min_pages == 500

    def test_min_rating(self):
        filters = parse_filters("4+ stars")

        assert filters.min_rating == 4
        assert filters.max_rating is None
        assert filters.min_pages is None

    def test_exact_rating(self):
        filters = parse_filters("only 5 stars")

        assert (filters.min_rating, filters.max_rating) == (5, 5)

    def test_star_books_in_year(self):
        """Test rating, year and status from one sentence."""
        filters = parse_filters("5 star books read in 2023")

        assert filters.min_rating == 5
        assert filters.year == 2023
        assert filters.read_status == "completed"

    def test_month_with_year(self):
        filters = parse_filters("books finished in may 2024")

        assert filters.month == 5
        assert filters.year == 2024

    def test_may_as_verb_is_not_a_month(self):
        assert parse_filters("books I may like").month is None

    def test_superlative_sort_and_limit(self):
        filters = parse_filters("top 3 highest rated fantasy")

        assert filters.limit == 3
        assert (filters.sort_by, filters.sort_order) == ("rating", "desc")
        assert filters.genre == "Fantasy"

    def test_explicit_sort(self):
        filters = parse_filters("sci-fi sorted by pages ascending")

        assert (filters.sort_by, filters.sort_order) == ("pages", "asc")

    def test_author(self):
        """Test that a capitalized name after 'by' is the author."""
        assert parse_filters("books by Brandon Sanderson").author == "Brandon Sanderson"

    def test_has_criteria_ignores_sorting(self):
        """Test that sort/limit alone are not filter criteria."""
        filters = parse_filters("highest rated")

        assert not filters.has_criteria()
        assert not filters.is_empty()


class TestParsedFilters:

    def test_merged_with(self):
        base = ParsedFilters(genre="Fantasy", max_pages=300)
        merged = base.merged_with(ParsedFilters(max_pages=400, read_status="unread"))

        assert merged == ParsedFilters(genre="Fantasy", max_pages=400, read_status="unread")

    def test_describe(self):
        assert ParsedFilters(read_status="unread", genre="Fantasy", max_pages=300).describe() == \
            "unread, Fantasy, under 300 pages"
        assert ParsedFilters().describe() == "all books"
