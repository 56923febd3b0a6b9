"""
Tests for the per-sender conversation context store.
"""
import pytest

from book_sms.context import BookRef, ConfirmationType, ContextStore


class TestContextStore:
    """Tests for ContextStore."""

    def test_get_unknown_sender_returns_none(self, context_store):
        """Test that a sender with no history has no context."""
        assert context_store.get("+15550000000") is None

    def test_update_creates_context(self, context_store, clock):
        """Test that the first update creates a context with a fresh expiry."""
        context = context_store.update("+15551234567", last_intent="search_book")

        assert context.sender == "+15551234567"
        assert context.last_intent == "search_book"
        assert context.timestamp == clock.now
        assert context.expires_at == clock.now + 300

    def test_merge_is_additive(self, context_store):
        """Test that fields not named in an update survive it."""
        context_store.update("+1", last_book_id=5, last_book_title="Dune")
        context_store.update("+1", last_intent="get_status")

        context = context_store.get("+1")
        assert context.last_book_id == 5
        assert context.last_book_title == "Dune"
        assert context.last_intent == "get_status"

    def test_update_slides_expiry(self, context_store, clock):
        """Test that every update resets expires_at to now + TTL."""
        context_store.update("+1", last_intent="help")
        clock.advance(200)
        context = context_store.update("+1", last_intent="stats")

        assert context.expires_at == clock.now + 300

    def test_context_live_until_expiry(self, context_store, clock):
        """Test that get returns data while now <= expires_at."""
        context_store.update("+1", last_book_id=1, last_book_title="The Hobbit")
        clock.advance(300)

        assert context_store.get("+1") is not None

    def test_expired_context_is_gone_for_good(self, context_store, clock):
        """Test that reads after expiry return None permanently."""
        context_store.update("+1", last_book_id=1, last_book_title="The Hobbit")
        clock.advance(301)

        assert context_store.get("+1") is None
        clock.advance(-100)
        assert context_store.get("+1") is None

    def test_update_after_expiry_starts_fresh(self, context_store, clock):
        """Test that stale fields do not leak into a new context."""
        context_store.update("+1", last_book_id=1, last_book_title="The Hobbit")
        clock.advance(400)
        context = context_store.update("+1", last_intent="help")

        assert context.last_book_id is None

    def test_search_results_are_coerced(self, context_store):
        """Test that plain dicts become BookRef entries."""
        context = context_store.update("+1", last_search_results=[{"id": 3, "title": "Mistborn"}])

        assert context.last_search_results == [BookRef(id=3, title="Mistborn")]
        assert context.has_search_results()

    def test_confirmation_type_is_coerced(self, context_store):
        """Test that a string confirmation type becomes the enum."""
        context = context_store.update("+1", awaiting_confirmation=True, confirmation_type="finish_book")

        assert context.confirmation_type is ConfirmationType.FINISH_BOOK

    def test_returned_context_is_a_copy(self, context_store):
        """Test that mutating a returned context does not change the store."""
        context = context_store.update("+1", last_search_results=[{"id": 3, "title": "Mistborn"}])
        context.last_search_results.clear()

        assert len(context_store.get("+1").last_search_results) == 1

    def test_unknown_field_rejected(self, context_store):
        """Test that typos in field names raise instead of silently passing."""
        with pytest.raises(ValueError):
            context_store.update("+1", last_boook_id=1)

    def test_protected_field_rejected(self, context_store):
        """Test that expiry cannot be written directly."""
        with pytest.raises(ValueError):
            context_store.update("+1", expires_at=0)

    def test_clear(self, context_store):
        """Test that clear removes a context unconditionally."""
        context_store.update("+1", last_intent="help")
        context_store.clear("+1")

        assert context_store.get("+1") is None

    def test_purge_expired(self, context_store, clock):
        """Test that purge removes only expired contexts."""
        context_store.update("+1", last_intent="help")
        clock.advance(250)
        context_store.update("+2", last_intent="help")
        clock.advance(100)

        assert context_store.purge_expired() == 1
        assert len(context_store) == 1
        assert context_store.get("+2") is not None

    def test_sender_used_verbatim(self, context_store):
        """Test that sender ids are not normalized by the store."""
        context_store.update("+1 555", last_intent="help")

        assert context_store.get("+1555") is None
        assert context_store.get("+1 555") is not None

    def test_invalid_ttl(self):
        """Test that a non-positive TTL is rejected."""
        with pytest.raises(ValueError):
            ContextStore(ttl_seconds=0)
