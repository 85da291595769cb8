# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Builds HAL+JSON resources for donation listings and RFC 7807 problem documents.
"""

from typing import Dict, List, Any, Optional
from urllib.parse import urljoin, urlencode
import math

from models.responses import HalLink

PROBLEM_BASE_URL = "https://api.blood-donor.org/problems/"
LISTINGS_PATH = "/api/donations"
ELIGIBILITY_CHECK_PATH = "/api/eligibility/check"


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url + '/', path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        """Build self link for a resource."""
        return self.build_link(resource_path, title="Self")

    def build_collection_link(self, collection_path: str) -> HalLink:
        """Build link to parent collection."""
        return self.build_link(collection_path, title="Collection")


class PaginationLinkBuilder:
    """Builder for pagination links in HAL collections."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def _page_link(self, base_path: str, params: Dict[str, Any], page: int, page_size: int, title: str) -> HalLink:
        query = urlencode({**params, 'page': page, 'pageSize': page_size})
        return self.link_builder.build_link(f"{base_path}?{query}", title=title)

    def build_pagination_links(
        self,
        base_path: str,
        current_page: int,
        total_pages: int,
        page_size: int,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, HalLink]:
        """Build self, first, prev, next and last links for a collection page."""
        params = query_params or {}
        links = {
            'self': self._page_link(base_path, params, current_page, page_size, "Current page")
        }

        if current_page > 1:
            links['first'] = self._page_link(base_path, params, 1, page_size, "First page")
            links['prev'] = self._page_link(base_path, params, current_page - 1, page_size, "Previous page")

        if current_page < total_pages:
            links['next'] = self._page_link(base_path, params, current_page + 1, page_size, "Next page")
            links['last'] = self._page_link(base_path, params, total_pages, page_size, "Last page")

        return links


class AffordanceLinkBuilder:
    """Builder for links on donation listings."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_listing_affordances(self, listing_id: str) -> Dict[str, HalLink]:
        """Build the self and collection links for a listing."""
        return {
            'self': self.link_builder.build_self_link(f"{LISTINGS_PATH}/{listing_id}"),
            'collection': self.link_builder.build_collection_link(LISTINGS_PATH)
        }


class HalResponseBuilder:
    """Assembles HAL resources, collections and problem documents."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.pagination_builder = PaginationLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        """Attach HAL links to a resource body."""
        response = dict(data)
        response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        collection_path: str,
        query_params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection response with pagination links."""
        total_pages = math.ceil(total / page_size) if page_size > 0 else 1

        pagination_links = self.pagination_builder.build_pagination_links(
            collection_path,
            page,
            total_pages,
            page_size,
            query_params
        )

        return {
            'total': total,
            'page': page,
            'page_size': page_size,
            'total_pages': total_pages,
            '_links': {rel: link.model_dump(exclude_none=True) for rel, link in pagination_links.items()},
            '_embedded': {
                'items': items
            }
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None,
        extensions: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{PROBLEM_BASE_URL}{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['errors'] = validation_errors

        if extensions:
            error_response.update(extensions)

        links = {
            'help': self.link_builder.build_link(
                f"/docs/errors#{error_type}",
                title="Error documentation"
            )
        }

        if error_type == "validation-error":
            links['schema'] = self.link_builder.build_link(
                "/openapi/openapi.json",
                title="API schema"
            )
        elif error_type == "permanent-exclusion":
            links['eligibility'] = self.link_builder.build_link(
                ELIGIBILITY_CHECK_PATH,
                method="POST",
                content_type="application/json",
                title="Check eligibility"
            )

        error_response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_listing(self, listing: Dict[str, Any]) -> Dict[str, Any]:
        """Format a donation listing with HAL links."""
        links = self.builder.affordance_builder.build_listing_affordances(listing['id'])
        return self.builder.build_resource_response(listing, links)

    def format_listing_collection(
        self,
        listings: List[Dict[str, Any]],
        total: int,
        page: int,
        page_size: int,
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Format a page of donation listings with HAL links."""
        return self.builder.build_collection_response(
            [self.format_listing(listing) for listing in listings],
            total,
            page,
            page_size,
            LISTINGS_PATH,
            filters
        )

    def format_eligibility_result(self, result: Dict[str, Any]) -> Dict[str, Any]:
        """Format an eligibility check result with HAL links."""
        links = {
            'self': self.builder.link_builder.build_link(
                ELIGIBILITY_CHECK_PATH, method="POST", title="Self"
            ),
            'listings': self.builder.link_builder.build_link(
                LISTINGS_PATH,
                method="POST",
                content_type="application/json",
                title="List a donation"
            )
        }
        return self.builder.build_resource_response(result, links)

    def format_validation_error(
        self,
        detail: str,
        instance: str,
        validation_errors: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Format a validation error response."""
        return self.builder.build_error_response(
            "validation-error",
            "Validation Error",
            400,
            detail,
            instance,
            validation_errors
        )

    def format_not_found_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format a not found error response."""
        return self.builder.build_error_response(
            "resource-not-found",
            "Resource Not Found",
            404,
            detail,
            instance
        )

    def format_conflict_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format a conflict error response."""
        return self.builder.build_error_response(
            "duplicate-submission",
            "Duplicate Submission",
            409,
            detail,
            instance
        )

    def format_permanent_exclusion_error(
        self,
        detail: str,
        instance: str,
        reasons: List[str],
        flags: List[str]
    ) -> Dict[str, Any]:
        """Format a permanent exclusion response carrying the deferral reasons."""
        return self.builder.build_error_response(
            "permanent-exclusion",
            "Permanently Deferred",
            422,
            detail,
            instance,
            extensions={'reasons': reasons, 'flags': flags}
        )

    def format_bad_gateway_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format an upstream failure response."""
        return self.builder.build_error_response(
            "external-service-error",
            "External Service Error",
            502,
            detail,
            instance
        )

    def format_server_error(self, detail: str, instance: str) -> Dict[str, Any]:
        """Format a server error response."""
        return self.builder.build_error_response(
            "internal-server-error",
            "Internal Server Error",
            500,
            detail,
            instance
        )


def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
