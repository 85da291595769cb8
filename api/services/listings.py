# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB-backed persistence for donation listings.

Implements the listing persistence collaborator used by the submission
workflow. A unique index on submissionId makes replays of the same submission
token return the stored listing instead of creating a second one.
"""

import logging
from typing import List, Optional, Tuple
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError
from opentelemetry import trace

from domain.submission import ListingDraft, ListingPersistenceError, SubmissionConflictError
from models.entities import DonorQuestionnaire, DonationListing
from models.enums import ListingStatus
from models.requests import ListingFilters
from services.mongodb import MongoDBService, PaginationResult, LISTINGS_COLLECTION

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

__all__ = ["MongoListingRepository", "ListingPersistenceError", "SubmissionConflictError", "build_listing"]


def build_listing(draft: ListingDraft) -> DonationListing:
    """Assemble the listing entity from an accepted submission."""
    data = draft.questionnaire.model_dump(include=set(DonorQuestionnaire.model_fields))
    data.update({k: v for k, v in draft.metadata.items() if v is not None})
    data.update(
        submission_id=draft.submission_id,
        status=ListingStatus.AVAILABLE,
        eligibility_status=draft.eligibility.status,
        deferral_reasons=list(draft.eligibility.reasons),
        advisories=list(draft.eligibility.advisories)
    )
    return DonationListing(**data)


class MongoListingRepository:
    """Stores and reads donation listings in MongoDB."""

    def __init__(self, mongodb_service: MongoDBService):
        self.mongodb = mongodb_service

    def create_listing(self, draft: ListingDraft) -> DonationListing:
        """
        Store a new listing for the draft.

        Returns the already stored listing when the submission token was seen
        before.

        Raises:
            SubmissionConflictError: when the token belongs to a deleted listing
            ListingPersistenceError: on any database failure
        """
        with tracer.start_as_current_span("listings.create") as span:
            span.set_attribute("listing.submission_id", draft.submission_id)

            listing = build_listing(draft)
            document = listing.model_dump(mode="json", by_alias=True)
            document["_id"] = ObjectId(document.pop("id"))

            try:
                self.mongodb.create(LISTINGS_COLLECTION, document)
            except DuplicateKeyError:
                existing = self.find_by_submission(draft.submission_id, include_deleted=True)
                if existing is None:
                    raise ListingPersistenceError(
                        f"Duplicate submission {draft.submission_id} could not be resolved"
                    )
                if existing.is_deleted():
                    raise SubmissionConflictError(
                        f"Submission {draft.submission_id} belongs to a removed listing"
                    )
                logger.info(
                    "Replayed submission returned existing listing",
                    extra={"submission_id": draft.submission_id, "listing_id": existing.id}
                )
                span.set_attribute("listing.replayed", True)
                return existing
            except PyMongoError as e:
                span.record_exception(e)
                raise ListingPersistenceError(str(e)) from e

            span.set_attribute("listing.id", listing.id)
            return listing

    def find_by_submission(self, submission_id: str, include_deleted: bool = False) -> Optional[DonationListing]:
        """Look up a listing by its submission token."""
        try:
            document = self.mongodb.find_one_by(
                LISTINGS_COLLECTION, {"submissionId": submission_id}, include_deleted=include_deleted
            )
        except PyMongoError as e:
            raise ListingPersistenceError(str(e)) from e
        return DonationListing.model_validate(document) if document else None

    def get_listing(self, listing_id: str) -> Optional[DonationListing]:
        """Get a listing by id; None when missing, deleted or malformed."""
        with tracer.start_as_current_span("listings.get") as span:
            span.set_attribute("listing.id", listing_id)
            try:
                document = self.mongodb.find_one(LISTINGS_COLLECTION, listing_id)
            except PyMongoError as e:
                span.record_exception(e)
                raise ListingPersistenceError(str(e)) from e
            return DonationListing.model_validate(document) if document else None

    def list_listings(self, filters: ListingFilters) -> Tuple[List[DonationListing], PaginationResult]:
        """List listings newest first, filtered by blood type and status."""
        query = {}
        if filters.blood_type:
            query["bloodType"] = filters.blood_type.value
        if filters.status:
            query["status"] = filters.status.value

        with tracer.start_as_current_span("listings.list") as span:
            span.set_attribute("listings.page", filters.page)
            try:
                result = self.mongodb.paginate(
                    LISTINGS_COLLECTION,
                    page=filters.page,
                    page_size=filters.page_size,
                    filters=query
                )
            except PyMongoError as e:
                span.record_exception(e)
                raise ListingPersistenceError(str(e)) from e

            listings = [DonationListing.model_validate(doc) for doc in result.items]
            span.set_attribute("listings.total", result.total)
            return listings, result
