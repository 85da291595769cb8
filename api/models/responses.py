# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.
"""

from typing import List, Optional, Dict
from pydantic import BaseModel, Field
from datetime import datetime
from .base import CamelModel


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class EligibilityResultResponse(CamelModel):
    """Eligibility classification returned to the form."""

    status: str = Field(..., description="eligible, temporarily_deferred or permanently_deferred")
    reasons: List[str] = Field(default_factory=list, description="Ordered deferral reasons")
    flags: List[str] = Field(default_factory=list, description="Triggering questionnaire flags")
    advisories: List[str] = Field(default_factory=list, description="Non-deferring reviewer notes")


class DonationListingResponse(CamelModel):
    """Donation listing as echoed to the client after creation or lookup."""

    id: str = Field(..., description="Listing ID")
    submission_id: str = Field(..., description="Submission token")
    donor_name: str = Field(..., description="Donor display name")
    blood_type: str = Field(..., description="Blood type")
    contact_number: str = Field(..., description="Contact number")
    availability: str = Field(..., description="Availability")
    location: str = Field(..., description="Location")
    additional_info: Optional[str] = Field(None, description="Additional information")
    status: str = Field(..., description="Listing status")
    eligibility_status: str = Field(..., description="Eligibility classification")
    deferral_reasons: List[str] = Field(default_factory=list, description="Temporary deferral reasons")
    advisories: List[str] = Field(default_factory=list, description="Reviewer notes")
    requester_id: str = Field(default="", description="Requester ID")
    recipient_name: Optional[str] = Field(None, description="Recipient name")
    willing_for_emergency: bool = Field(..., description="Accepts emergency requests")
    preferred_contact_method: str = Field(..., description="Preferred contact channel")
    listed_on: datetime = Field(..., description="Listing timestamp")


class ErrorResponse(BaseModel):
    """RFC 7807 problem details response."""

    type: str = Field(..., description="Problem type URI")
    title: str = Field(..., description="Short summary")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Human-readable explanation")
    instance: str = Field(..., description="Request path")
    errors: Optional[List[Dict[str, object]]] = Field(None, description="Field-level errors")
