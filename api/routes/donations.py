# SPDX-License-Identifier: Apache-2.0

"""
Donation listing endpoints.

This module implements listing submission, the paginated listing collection
and the listing detail view.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging
from typing import Any, Dict

from domain.submission import ListingPersistenceError
from middleware.error_handler import (
    ValidationException,
    PermanentExclusionException,
    DuplicateSubmissionException,
    NotFoundException,
    ExternalServiceException
)
from models.entities import DonationListing
from models.enums import SubmissionStatus
from models.requests import CreateDonationListingRequest, ListingFilters, ListingPath
from models.responses import DonationListingResponse, ErrorResponse

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

donations_tag = Tag(name="Donations", description="Blood donation listings")
donations_bp = APIBlueprint(
    'donations',
    __name__,
    url_prefix='/api/donations',
    abp_tags=[donations_tag]
)


def _listing_body(listing: DonationListing) -> Dict[str, Any]:
    """Render a listing as a HAL resource."""
    response = DonationListingResponse.model_validate(listing.model_dump(mode="json"))
    return current_app.hal_formatter.format_listing(response.model_dump(mode="json", by_alias=True))


@donations_bp.post('', responses={201: DonationListingResponse, 400: ErrorResponse, 409: ErrorResponse,
                                  422: ErrorResponse, 502: ErrorResponse})
def create_donation_listing():
    """
    List a blood donation.

    Runs validation and eligibility screening. Temporarily deferred donors are
    still listed with their deferral reasons; permanently deferred donors are
    rejected and nothing is stored.
    """
    request_model = current_app.validation_middleware.parse_json_body(CreateDonationListingRequest)

    with tracer.start_as_current_span("domain.submission.submit") as span:
        outcome = current_app.submission_orchestrator.submit(
            request_model,
            submission_id=request_model.submission_id,
            metadata={"donor_name": request_model.donor_name}
        )
        span.set_attributes({
            "submission.id": outcome.submission_id or "",
            "submission.status": outcome.status.value
        })

        if outcome.status == SubmissionStatus.INVALID:
            raise ValidationException(
                outcome.error_message,
                current_app.validation_middleware.format_field_errors(outcome.field_errors)
            )

        if outcome.status == SubmissionStatus.PERMANENTLY_DEFERRED:
            raise PermanentExclusionException(
                "Donor is not eligible to donate",
                outcome.eligibility.reasons,
                outcome.eligibility.flags
            )

        if outcome.status in (SubmissionStatus.SUPPRESSED, SubmissionStatus.CONFLICT):
            raise DuplicateSubmissionException(outcome.error_message)

        if outcome.status == SubmissionStatus.FAILED:
            span.set_status(Status(StatusCode.ERROR, outcome.error_message))
            raise ExternalServiceException(outcome.error_message)

    response = jsonify(_listing_body(outcome.listing))
    response.status_code = 201
    response.headers['Location'] = f"/api/donations/{outcome.listing.id}"
    return response


@donations_bp.get('')
def list_donation_listings(query: ListingFilters):
    """
    List donation listings.

    Newest first, optionally filtered by blood type and listing status.
    """
    with tracer.start_as_current_span("listings.collection") as span:
        try:
            listings, page = current_app.listing_repository.list_listings(query)
        except ListingPersistenceError as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise ExternalServiceException(f"Failed to load donation listings: {str(e)}")

        span.set_attribute("listings.returned", len(listings))

    filters = {}
    if query.blood_type:
        filters['bloodType'] = query.blood_type.value
    if query.status:
        filters['status'] = query.status.value

    items = [
        DonationListingResponse.model_validate(listing.model_dump(mode="json")).model_dump(mode="json", by_alias=True)
        for listing in listings
    ]
    return jsonify(current_app.hal_formatter.format_listing_collection(
        items, page.total, page.page, page.page_size, filters
    )), 200


@donations_bp.get('/<listing_id>', responses={200: DonationListingResponse, 404: ErrorResponse})
def get_donation_listing(path: ListingPath):
    """Get a single donation listing."""
    try:
        listing = current_app.listing_repository.get_listing(path.listing_id)
    except ListingPersistenceError as e:
        raise ExternalServiceException(f"Failed to load donation listing: {str(e)}")

    if listing is None:
        raise NotFoundException(f"Donation listing {path.listing_id} not found")

    return jsonify(_listing_body(listing)), 200
