"""
Test suite for the resource store.

Covers the fetch lifecycle, stale-response handling, cache reconciliation
after mutations and error reporting.
"""

from decimal import Decimal
from unittest.mock import Mock

import httpx

from estate_admin.core.exceptions import ApiValidationError, NetworkError, NotFoundError, ServerError
from estate_admin.core.models import BankAccount, PaginationDescriptor
from estate_admin.data.resources import Page, ResourceService, get_definition
from estate_admin.store.errors import normalize_error
from estate_admin.store.resource_store import FULL_COLLECTION_PAGE_SIZE, ResourceStore


def _account(record_id: str, name: str = "Main") -> BankAccount:
    return BankAccount(id=record_id, account_name=name)


def _page(*records, total=None, per_page=15, current=1) -> Page:
    return Page(
        data=list(records),
        pagination=PaginationDescriptor.from_counts(
            total_items=len(records) if total is None else total,
            items_per_page=per_page,
            current_page=current,
        ),
    )


def _mock_service() -> Mock:
    service = Mock(spec=ResourceService)
    service.definition = get_definition("bank-accounts")
    return service


class TestFetch:
    """Test list fetch lifecycle."""

    def setup_method(self):
        self.service = _mock_service()
        self.store = ResourceStore(self.service)

    def test_initial_state(self):
        assert self.store.records == ()
        assert self.store.pagination is None
        assert self.store.loading is False
        assert self.store.error is None

    def test_successful_fetch_replaces_records(self):
        """Test records and pagination come from the page."""
        self.service.list.return_value = _page(_account("1"), _account("2"), total=2)

        page = self.store.fetch(filters={"search": "x"}, page=1, per_page=15)

        assert page is not None
        assert [r.id for r in self.store.records] == ["1", "2"]
        assert self.store.pagination.total_items == 2
        assert self.store.loading is False
        self.service.list.assert_called_once_with(filters={"search": "x"}, page=1, per_page=15)

    def test_loading_flag_during_fetch(self):
        """Test listeners see loading true, then false."""
        self.service.list.return_value = _page()
        seen = []
        self.store.subscribe(lambda state: seen.append(state.loading))

        self.store.fetch()

        assert seen == [True, False]

    def test_failed_fetch_keeps_records(self):
        """Test a network failure keeps the previous page and sets a fallback error."""
        self.service.list.return_value = _page(_account("1"), _account("2"), _account("3"))
        self.store.fetch()

        self.service.list.side_effect = NetworkError("connection refused")
        assert self.store.fetch() is None

        assert len(self.store.records) == 3
        assert self.store.loading is False
        assert self.store.error == "Failed to fetch accounts"

    def test_server_message_preferred(self):
        self.service.list.side_effect = ServerError(
            500, "GET /bank-accounts failed with HTTP 500", server_message="Database offline"
        )
        self.store.fetch()
        assert self.store.error == "Database offline"

    def test_next_fetch_clears_error(self):
        self.service.list.side_effect = NetworkError("down")
        self.store.fetch()
        assert self.store.error is not None

        self.service.list.side_effect = None
        self.service.list.return_value = _page(_account("1"))
        self.store.fetch()

        assert self.store.error is None

    def test_stale_response_is_dropped(self):
        """Test only the most recently issued fetch is applied."""
        newer = _page(_account("2", "Page two"), total=30, current=2)
        older = _page(_account("1", "Page one"), total=30, current=1)

        def slow_first_fetch(filters=None, page=None, per_page=None):
            if page == 1:
                # Page 2 is requested and answered while page 1 is in flight
                self.service.list.side_effect = lambda **kwargs: newer
                self.store.fetch(page=2)
                return older
            return newer

        self.service.list.side_effect = slow_first_fetch

        result = self.store.fetch(page=1)

        assert result is None
        assert [r.account_name for r in self.store.records] == ["Page two"]
        assert self.store.pagination.current_page == 2
        assert self.store.loading is False

    def test_stale_failure_is_dropped(self):
        """Test a failure of a superseded fetch does not set an error."""

        def failing_first_fetch(filters=None, page=None, per_page=None):
            self.service.list.side_effect = lambda **kwargs: _page(_account("9"))
            self.store.fetch(page=2)
            raise NetworkError("timeout")

        self.service.list.side_effect = failing_first_fetch

        self.store.fetch(page=1)

        assert self.store.error is None
        assert [r.id for r in self.store.records] == ["9"]

    def test_fetch_all_uses_large_page(self):
        self.service.list.return_value = _page(_account("1"), per_page=FULL_COLLECTION_PAGE_SIZE)

        self.store.fetch_all(filters={"account_id": "1"})

        self.service.list.assert_called_once_with(
            filters={"account_id": "1"}, page=1, per_page=FULL_COLLECTION_PAGE_SIZE
        )
        assert self.store.state.is_complete

    def test_single_page_is_not_complete(self):
        self.service.list.return_value = _page(_account("1"), total=40)
        self.store.fetch()
        assert not self.store.state.is_complete

    def test_fetch_by_id_leaves_cache_alone(self):
        self.service.get_by_id.return_value = _account("5")

        record = self.store.fetch_by_id("5")

        assert record.id == "5"
        assert self.store.records == ()

    def test_fetch_by_id_not_found(self):
        self.service.get_by_id.side_effect = NotFoundError("missing", server_message="Not found")

        assert self.store.fetch_by_id("5") is None
        assert self.store.error == "Not found"


class TestMutations:
    """Test create, update and delete reconcile the cached page."""

    def setup_method(self):
        self.service = _mock_service()
        self.store = ResourceStore(self.service)
        self.service.list.return_value = _page(_account("1"), _account("2"))
        self.store.fetch()

    def test_create_appends(self):
        """Test a created record is appended to the loaded page."""
        self.service.create.return_value = _account("3", "New")
        hook = Mock()
        self.store.on_created(hook)

        record = self.store.create({"account_name": "New"})

        assert record.id == "3"
        assert [r.id for r in self.store.records] == ["1", "2", "3"]
        hook.assert_called_once_with(record)

    def test_create_validation_failure(self):
        """Test the first backend validation message becomes the error."""
        self.service.create.side_effect = ApiValidationError(
            422, "POST failed", errors={"account_number": ["Account number is required."]}
        )

        assert self.store.create({}) is None
        assert self.store.error == "Account number is required."
        assert len(self.store.records) == 2

    def test_update_replaces_cached_record(self):
        self.service.update.return_value = _account("2", "Renamed")

        self.store.update("2", {"account_name": "Renamed"})

        assert [r.account_name for r in self.store.records] == ["Main", "Renamed"]

    def test_update_of_uncached_record(self):
        self.service.update.return_value = _account("8", "Elsewhere")

        record = self.store.update("8", {"account_name": "Elsewhere"})

        assert record.account_name == "Elsewhere"
        assert [r.id for r in self.store.records] == ["1", "2"]

    def test_update_failure_keeps_cache(self):
        self.service.update.side_effect = NetworkError("down")

        assert self.store.update("2", {"account_name": "X"}) is None
        assert self.store.error == "Failed to update account"
        assert self.store.records[1].account_name == "Main"

    def test_delete_removes_and_runs_hooks(self):
        hook = Mock()
        self.store.on_deleted(hook)

        assert self.store.delete("1") is True

        assert [r.id for r in self.store.records] == ["2"]
        hook.assert_called_once_with("1")

    def test_delete_twice_reports_not_found(self):
        """Test a second delete of the same id fails without touching the cache."""
        self.store.delete("1")
        self.service.delete.side_effect = NotFoundError("DELETE failed", server_message="Not found")

        assert self.store.delete("1") is False
        assert self.store.error == "Not found"
        assert [r.id for r in self.store.records] == ["2"]

    def test_mutations_do_not_touch_loading(self):
        seen = []
        self.store.subscribe(lambda state: seen.append(state.loading))
        self.service.create.return_value = _account("3")

        self.store.create({})

        assert seen == [False]

    def test_clear_error(self):
        self.service.delete.side_effect = NetworkError("down")
        self.store.delete("1")
        self.store.clear_error()
        assert self.store.error is None

    def test_unsubscribe(self):
        listener = Mock()
        unsubscribe = self.store.subscribe(listener)
        unsubscribe()

        self.store.clear_error()

        listener.assert_not_called()


class TestNormalizeError:
    """Test message selection order."""

    def test_fallback_for_network_error(self):
        assert normalize_error(NetworkError("refused"), "Failed to fetch users") == "Failed to fetch users"

    def test_generic_http_message_when_body_is_silent(self):
        exc = ServerError(500, "GET /users failed with HTTP 500")
        assert normalize_error(exc, "Failed to fetch users") == "GET /users failed with HTTP 500"

    def test_server_message_beats_field_errors(self):
        exc = ApiValidationError(
            422, "failed", errors={"name": ["Name is required."]}, server_message="Invalid data"
        )
        assert normalize_error(exc, "x") == "Invalid data"

    def test_unknown_exception_uses_fallback(self):
        assert normalize_error(ValueError("odd"), "Failed to delete user") == "Failed to delete user"


def test_decimal_amounts_survive_cache():
    service = _mock_service()
    store = ResourceStore(service)
    service.list.return_value = _page(BankAccount(id="1", opening_balance="10.50"))

    store.fetch()

    assert store.records[0].opening_balance == Decimal("10.50")


class TestMalformedResponses:
    """Test bodies the client cannot interpret end the fetch cleanly."""

    def test_non_numeric_total_ends_loading(self, registry, backend):
        backend.queued.append(httpx.Response(200, json={"data": [], "total": "n/a", "per_page": 15}))
        store = registry["bank-accounts"]

        assert store.fetch() is None

        assert store.loading is False
        assert store.error == "Failed to fetch accounts"
