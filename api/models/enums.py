# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the blood donor listing platform.
"""

from enum import Enum


class BloodType(str, Enum):
    """ABO blood group with Rh factor."""
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"


class Gender(str, Enum):
    """Donor gender as captured by the listing form."""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ContactMethod(str, Enum):
    """Preferred channel for reaching a donor."""
    PHONE = "phone"
    EMAIL = "email"
    SMS = "sms"


class EligibilityStatus(str, Enum):
    """Donor eligibility classification."""
    ELIGIBLE = "eligible"
    TEMPORARILY_DEFERRED = "temporarily_deferred"
    PERMANENTLY_DEFERRED = "permanently_deferred"


class ListingStatus(str, Enum):
    """Donation listing lifecycle status."""
    AVAILABLE = "available"
    PENDING = "pending"
    COMPLETED = "completed"


class SubmissionStatus(str, Enum):
    """Outcome of a donation listing submission attempt."""
    CREATED = "created"
    INVALID = "invalid"
    PERMANENTLY_DEFERRED = "permanently_deferred"
    SUPPRESSED = "suppressed"
    CONFLICT = "conflict"
    FAILED = "failed"
