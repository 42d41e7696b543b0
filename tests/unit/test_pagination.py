"""
Unit Tests - Pagination and Filter Parsing
"""
import uuid

import pytest

from src.analytics.pagination import (
    PageRequest,
    PurchaseFilters,
    build_filters,
    build_page_request,
    parse_positive_int,
    parse_status,
    parse_uuid,
    total_pages,
)
from src.database.models import PaymentStatus


class TestParsePositiveInt:
    """Tests for paging value parsing"""

    @pytest.mark.parametrize("raw", [None, "", "abc", "1.5", "0", "-3"])
    def test_falls_back_to_default(self, raw):
        assert parse_positive_int(raw, 50) == 50

    def test_parses_numeric_strings(self):
        assert parse_positive_int("7", 50) == 7
        assert parse_positive_int(" 12 ", 50) == 12
        assert parse_positive_int(3, 50) == 3

    def test_clamps_to_maximum(self):
        assert parse_positive_int("10000", 50, maximum=500) == 500


class TestPageRequest:
    """Tests for page requests"""

    def test_defaults(self):
        page = build_page_request(None, None)

        assert page == PageRequest(page=1, limit=50)
        assert page.offset == 0

    def test_offset(self):
        assert build_page_request("3", "20").offset == 40

    def test_non_numeric_input_uses_defaults(self):
        page = build_page_request("first", "lots", default_limit=25)

        assert page.page == 1
        assert page.limit == 25

    def test_limit_is_capped(self):
        assert build_page_request("1", "9999", max_limit=500).limit == 500


class TestFilters:
    """Tests for purchase filter parsing"""

    def test_status_is_case_insensitive(self):
        assert parse_status("Completed") is PaymentStatus.COMPLETED
        assert parse_status(" failed ") is PaymentStatus.FAILED

    def test_unknown_status_means_unfiltered(self):
        assert parse_status("refunded") is None
        assert parse_status(None) is None

    def test_uuid_parsing(self):
        value = uuid.uuid4()

        assert parse_uuid(str(value)) == value
        assert parse_uuid("not-a-uuid") is None
        assert parse_uuid("") is None

    def test_build_filters(self):
        account_id = uuid.uuid4()
        filters = build_filters(status="pending", account_id=str(account_id), product_id="bogus")

        assert filters == PurchaseFilters(
            status=PaymentStatus.PENDING,
            account_id=account_id,
            product_id=None,
        )

    def test_log_context(self):
        account_id = uuid.uuid4()
        context = PurchaseFilters(status=PaymentStatus.FAILED, account_id=account_id).as_log_context()

        assert context == {"status": "failed", "account_id": str(account_id), "product_id": None}


class TestTotalPages:
    """Tests for page count math"""

    @pytest.mark.parametrize("total,limit,expected", [
        (0, 50, 0),
        (1, 50, 1),
        (50, 50, 1),
        (51, 50, 2),
        (7, 3, 3),
    ])
    def test_total_pages(self, total, limit, expected):
        assert total_pages(total, limit) == expected
