# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the blood donor listing platform.
"""

from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from .base import CamelModel, EntityFields
from .enums import (
    BloodType,
    Gender,
    ContactMethod,
    EligibilityStatus,
    ListingStatus
)


class RhVariants(BaseModel):
    """Presence of the C, c, E and e Rh antigens. Unchecked means negative or unknown."""

    # Antigen names are case sensitive, so no alias generator here
    model_config = ConfigDict(validate_assignment=True)

    C: bool = Field(default=False, description="Big C antigen present")
    c: bool = Field(default=False, description="Little c antigen present")
    E: bool = Field(default=False, description="Big E antigen present")
    e: bool = Field(default=False, description="Little e antigen present")


class DonorQuestionnaire(CamelModel):
    """
    Answers a prospective donor gives in the donation listing form.

    Required contact fields are kept lenient here so that missing values are
    reported per field by the questionnaire validator instead of failing parsing.
    """

    # Identity and contact
    blood_type: Optional[BloodType] = Field(None, description="ABO blood group with Rh factor")
    contact_number: str = Field(default="", description="Donor contact number")
    availability: str = Field(default="", description="When the donor is available")
    location: str = Field(default="", description="City, state or hospital/clinic name")
    additional_info: Optional[str] = Field(None, max_length=2000, description="Free-form notes")

    # Demographics
    age: Optional[int] = Field(None, description="Age in years")
    gender: Optional[Gender] = Field(None, description="Donor gender")
    weight: Optional[float] = Field(None, description="Weight in kilograms")
    rh_factor: Optional[str] = Field(None, description="Rh factor as entered")

    # Extended antigen profile
    rh_variants: RhVariants = Field(default_factory=RhVariants, description="Rh variant antigens")
    kell: bool = Field(default=False, description="Kell antigen present")
    duffy: bool = Field(default=False, description="Duffy antigen present")
    kidd: bool = Field(default=False, description="Kidd antigen present")

    # Permanent exclusions
    hiv_status: bool = Field(default=False, description="HIV-positive history")
    hepatitis_b: bool = Field(default=False, description="Hepatitis B history")
    hepatitis_c: bool = Field(default=False, description="Hepatitis C history")
    htlv: bool = Field(default=False, description="HTLV-positive history")
    iv_drug_use: bool = Field(default=False, description="History of intravenous drug use")

    # Temporary exclusions and supporting data
    recent_cold_flu: bool = Field(default=False, description="Recent cold or flu")
    recent_tattoo: bool = Field(default=False, description="Recent tattoo or piercing")
    tattoo_date: Optional[date] = Field(None, description="Date of the tattoo or piercing")
    recent_surgery: bool = Field(default=False, description="Recent surgery")
    surgery_details: Optional[str] = Field(None, description="Surgery details")
    pregnant: bool = Field(default=False, description="Pregnant or recent delivery")
    recent_vaccination: bool = Field(default=False, description="Recent vaccination")
    vaccination_date: Optional[date] = Field(None, description="Date of the vaccination")
    vaccination_type: Optional[str] = Field(None, description="Vaccine received")
    recent_travel: bool = Field(default=False, description="Recent travel")
    travel_details: Optional[str] = Field(None, description="Travel details")
    current_medications: Optional[str] = Field(None, description="Medications currently taken")
    allergies: Optional[str] = Field(None, description="Known allergies")
    has_chronic_illness: bool = Field(default=False, description="Has a chronic illness")
    chronic_illness_details: Optional[str] = Field(None, description="Chronic illness details")

    # History and preferences
    last_donation_date: Optional[date] = Field(None, description="Date of the last donation")
    hemoglobin_level: Optional[float] = Field(None, description="Hemoglobin in g/dL")
    total_donations: Optional[int] = Field(None, description="Number of prior donations")
    preferred_donation_center: Optional[str] = Field(None, description="Preferred donation center")
    willing_for_emergency: bool = Field(default=True, description="Accepts emergency requests")
    preferred_contact_method: ContactMethod = Field(
        default=ContactMethod.PHONE, description="Preferred contact channel"
    )

    @field_validator(
        'age', 'weight', 'hemoglobin_level', 'total_donations',
        'last_donation_date', 'tattoo_date', 'vaccination_date',
        'rh_factor', 'additional_info', 'surgery_details', 'vaccination_type',
        'travel_details', 'current_medications', 'allergies',
        'chronic_illness_details', 'preferred_donation_center',
        mode='before'
    )
    @classmethod
    def blank_to_none(cls, v):
        """Treat blank form inputs as not provided."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('blood_type', mode='before')
    @classmethod
    def normalize_blood_type(cls, v):
        """Normalize blood type case and whitespace."""
        if v is None:
            return None
        if isinstance(v, str):
            v = v.strip().upper()
            return v or None
        return v

    @field_validator('gender', mode='before')
    @classmethod
    def normalize_gender(cls, v):
        """Accept gender in any case, e.g. 'Male' from the form."""
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @field_validator('preferred_contact_method', mode='before')
    @classmethod
    def normalize_contact_method(cls, v):
        """Accept contact method in any case; blank falls back to phone."""
        if v is None:
            return ContactMethod.PHONE
        if isinstance(v, str):
            return v.strip().lower() or ContactMethod.PHONE
        return v

    @field_validator('contact_number', 'availability', 'location', mode='before')
    @classmethod
    def normalize_required_text(cls, v):
        """Strip required text fields; missing values become empty strings."""
        if v is None:
            return ""
        return str(v).strip()


class DonationListing(DonorQuestionnaire, EntityFields):
    """Stored donation listing: the questionnaire plus listing metadata."""

    submission_id: str = Field(..., description="Idempotency token of the originating submission")
    donor_name: str = Field(default="Anonymous donor", max_length=200, description="Display name")
    status: ListingStatus = Field(default=ListingStatus.AVAILABLE, description="Listing status")
    eligibility_status: EligibilityStatus = Field(
        default=EligibilityStatus.ELIGIBLE, description="Classification at submission time"
    )
    deferral_reasons: List[str] = Field(default_factory=list, description="Temporary deferral reasons")
    advisories: List[str] = Field(default_factory=list, description="Notes for reviewers")
    requester_id: str = Field(default="", description="Requester who claimed this listing")
    recipient_name: Optional[str] = Field(None, description="Recipient name once matched")
    listed_on: datetime = Field(default_factory=datetime.utcnow, description="Listing date")

    @field_validator('donor_name')
    @classmethod
    def validate_donor_name(cls, v):
        """Validate donor name."""
        if not v.strip():
            raise ValueError('Donor name cannot be empty')
        return v.strip()

    def is_available(self) -> bool:
        """Check if the listing can still be matched to a requester."""
        return self.status == ListingStatus.AVAILABLE and not self.is_deleted()
