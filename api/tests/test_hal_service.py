# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for HAL response formatting.
"""

import pytest

from services.hal import HalFormatter, HalLinkBuilder, PaginationLinkBuilder, PROBLEM_BASE_URL

BASE_URL = "http://localhost:5000"


@pytest.fixture
def formatter():
    return HalFormatter(BASE_URL)


class TestHalLinkBuilder:
    """Test link construction."""

    def test_build_link(self):
        link = HalLinkBuilder(BASE_URL + "/").build_link("/api/donations", title="Listings")

        assert link.href == "http://localhost:5000/api/donations"
        assert link.method == "GET"
        assert link.title == "Listings"


class TestPaginationLinks:
    """Test pagination link generation."""

    def test_middle_page_has_all_links(self):
        links = PaginationLinkBuilder(BASE_URL).build_pagination_links(
            "/api/donations", current_page=2, total_pages=3, page_size=10,
            query_params={"bloodType": "O+"}
        )

        assert set(links) == {"self", "first", "prev", "next", "last"}
        assert links["next"].href == "http://localhost:5000/api/donations?bloodType=O%2B&page=3&pageSize=10"

    def test_single_page_has_only_self(self):
        links = PaginationLinkBuilder(BASE_URL).build_pagination_links(
            "/api/donations", current_page=1, total_pages=1, page_size=20
        )

        assert list(links) == ["self"]


class TestHalFormatter:
    """Test resource and problem formatting."""

    @pytest.mark.parametrize("status", ["available", "pending", "completed"])
    def test_listing_links_only_to_served_routes(self, formatter, status):
        body = formatter.format_listing({"id": "abc", "status": status})

        assert set(body["_links"]) == {"self", "collection"}
        assert body["_links"]["self"]["href"] == "http://localhost:5000/api/donations/abc"
        assert body["_links"]["collection"]["href"] == "http://localhost:5000/api/donations"

    def test_collection(self, formatter):
        body = formatter.format_listing_collection(
            [{"id": "a", "status": "available"}], total=1, page=1, page_size=20
        )

        assert body["total"] == 1
        assert body["total_pages"] == 1
        assert body["_embedded"]["items"][0]["_links"]["self"]["href"].endswith("/api/donations/a")

    def test_validation_error(self, formatter):
        errors = [{"field": "bloodType", "message": "Blood type is required", "type": "value_error"}]

        body = formatter.format_validation_error("Invalid", "/api/donations", errors)

        assert body["type"] == f"{PROBLEM_BASE_URL}validation-error"
        assert body["status"] == 400
        assert body["errors"] == errors
        assert "schema" in body["_links"]

    def test_permanent_exclusion_carries_reasons(self, formatter):
        body = formatter.format_permanent_exclusion_error(
            "Not eligible", "/api/donations", ["Hepatitis C"], ["hepatitisC"]
        )

        assert body["status"] == 422
        assert body["reasons"] == ["Hepatitis C"]
        assert body["flags"] == ["hepatitisC"]
        assert "eligibility" in body["_links"]

    @pytest.mark.parametrize("method,status", [
        ("format_not_found_error", 404),
        ("format_conflict_error", 409),
        ("format_bad_gateway_error", 502),
        ("format_server_error", 500),
    ])
    def test_error_statuses(self, formatter, method, status):
        body = getattr(formatter, method)("detail", "/api/donations")

        assert body["status"] == status
        assert body["instance"] == "/api/donations"
