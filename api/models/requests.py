# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator
from .base import CamelModel
from .entities import DonorQuestionnaire
from .enums import BloodType, ListingStatus


class EligibilityCheckRequest(DonorQuestionnaire):
    """Request model for a standalone eligibility check."""


class CreateDonationListingRequest(DonorQuestionnaire):
    """Request model for listing a donation from the donor form."""

    donor_name: Optional[str] = Field(None, max_length=200, description="Display name for the listing")
    submission_id: Optional[str] = Field(
        None,
        min_length=1,
        max_length=100,
        description="Client-generated token used to deduplicate repeated submissions"
    )

    @field_validator('donor_name', 'submission_id', mode='before')
    @classmethod
    def blank_metadata_to_none(cls, v):
        """Treat blank metadata as not provided."""
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class ListingFilters(CamelModel):
    """Query parameters for listing donations."""

    page: int = Field(default=1, ge=1, description="Page number")
    page_size: int = Field(default=20, ge=1, le=100, description="Items per page")
    blood_type: Optional[BloodType] = Field(None, description="Filter by blood type")
    status: Optional[ListingStatus] = Field(None, description="Filter by listing status")

    @field_validator('blood_type', mode='before')
    @classmethod
    def normalize_blood_type(cls, v):
        """Query strings arrive with '+' decoded as space, e.g. 'O ' for 'O+'."""
        if isinstance(v, str):
            stripped = v.strip().upper()
            if stripped and v.endswith(' ') and not stripped.endswith(('+', '-')):
                return stripped + '+'
            return stripped or None
        return v


class ListingPath(BaseModel):
    """Path parameters for a single donation listing."""

    listing_id: str = Field(..., description="Donation listing identifier")
