# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the blood donor listing platform.
"""

# Base models
from .base import CamelModel, EntityFields, generate_object_id

# Enumerations
from .enums import (
    BloodType,
    Gender,
    ContactMethod,
    EligibilityStatus,
    ListingStatus,
    SubmissionStatus
)

# Core entities
from .entities import RhVariants, DonorQuestionnaire, DonationListing

# Request models
from .requests import (
    EligibilityCheckRequest,
    CreateDonationListingRequest,
    ListingFilters,
    ListingPath
)

# Response models
from .responses import (
    HalLink,
    EligibilityResultResponse,
    DonationListingResponse,
    ErrorResponse
)

__all__ = [
    # Base models
    "CamelModel",
    "EntityFields",
    "generate_object_id",

    # Enumerations
    "BloodType",
    "Gender",
    "ContactMethod",
    "EligibilityStatus",
    "ListingStatus",
    "SubmissionStatus",

    # Core entities
    "RhVariants",
    "DonorQuestionnaire",
    "DonationListing",

    # Request models
    "EligibilityCheckRequest",
    "CreateDonationListingRequest",
    "ListingFilters",
    "ListingPath",

    # Response models
    "HalLink",
    "EligibilityResultResponse",
    "DonationListingResponse",
    "ErrorResponse"
]
