"""
Tests for ParsedFilters -> StorageQuery projection.
"""
from datetime import date

from book_sms.query import ParsedFilters, StorageQuery, build_query, combine_and, combine_or, parse_filters


class TestBuildQuery:
    """Tests for build_query."""

    def test_empty_filters_build_empty_query(self):
        """Test that no filters means no where/order_by/take/skip."""
        query = build_query(ParsedFilters())

        assert query == StorageQuery()
        assert query.to_dict() == {}

    def test_unread_fantasy_under_300_pages(self):
        """Test the where clause for the canonical combined query."""
        query = build_query(parse_filters("Unread fantasy under 300 pages"))

        assert query.where == {"read": None, "genre": "Fantasy", "pages": {"lte": 300}}
        assert query.order_by is None

    def test_read_status_values(self):
        assert build_query(ParsedFilters(read_status="completed")).where == {"read": "Read"}
        assert build_query(ParsedFilters(read_status="reading")).where == {"read": "Reading"}
        assert build_query(ParsedFilters(read_status="dnf")).where == {"read": "DNF"}

    def test_ranges(self):
        query = build_query(ParsedFilters(min_pages=200, max_pages=400, min_rating=4))

        assert query.where == {"pages": {"gte": 200, "lte": 400}, "rating": {"gte": 4}}

    def test_year_range(self):
        query = build_query(ParsedFilters(year=2023))

        assert query.where == {"date_finished": {"gte": "2023-01-01", "lte": "2023-12-31"}}

    def test_month_defaults_to_current_year(self):
        """Test that a month without a year uses today's year."""
        query = build_query(ParsedFilters(month=2), today=date(2024, 6, 15))

        assert query.where == {"date_finished": {"gte": "2024-02-01", "lte": "2024-02-31"}}

    def test_sort_defaults_to_desc(self):
        """Test that 'date' sorts on date_finished, descending by default."""
        query = build_query(ParsedFilters(sort_by="date"))

        assert query.order_by == [{"date_finished": "desc"}]

    def test_limit_and_offset(self):
        query = build_query(ParsedFilters(limit=3, offset=6))

        assert (query.take, query.skip) == (3, 6)


class TestCombine:
    """Tests for combine_and / combine_or."""

    def test_no_clauses(self):
        assert combine_and() == {}
        assert combine_or(None, {}) == {}

    def test_single_clause_unwrapped(self):
        assert combine_and({"genre": "Fantasy"}) == {"genre": "Fantasy"}

    def test_many_clauses(self):
        assert combine_or({"a": 1}, None, {"b": 2}) == {"OR": [{"a": 1}, {"b": 2}]}
        assert combine_and({"a": 1}, {"b": 2}) == {"AND": [{"a": 1}, {"b": 2}]}


class TestStorageQuery:

    def test_round_trip_dict(self):
        query = StorageQuery(where={"read": None}, order_by=[{"rating": "desc"}])

        assert StorageQuery.from_dict(query.to_dict()) == query

    def test_page(self):
        page = StorageQuery(where={"genre": "Fantasy"}).page(2, 5)

        assert (page.take, page.skip) == (5, 10)
        assert page.where == {"genre": "Fantasy"}

    def test_page_respects_overall_take(self):
        """Test that a capped query's later pages hold only the remainder."""
        top_seven = StorageQuery(where={"genre": "Fantasy"}, take=7)

        assert (top_seven.page(0, 5).take, top_seven.page(0, 5).skip) == (5, 0)
        assert (top_seven.page(1, 5).take, top_seven.page(1, 5).skip) == (2, 5)
        assert top_seven.page(2, 5).take == 0
