# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for Pydantic models.
"""

import pytest
from datetime import date, datetime
from pydantic import ValidationError

from models.entities import DonorQuestionnaire, DonationListing, RhVariants
from models.enums import BloodType, ContactMethod, Gender, ListingStatus
from models.requests import CreateDonationListingRequest, ListingFilters


class TestDonorQuestionnaire:
    """Test questionnaire parsing and normalization."""

    def test_parses_camel_case_form(self, eligible_form_data):
        questionnaire = DonorQuestionnaire.model_validate(eligible_form_data)

        assert questionnaire.blood_type == BloodType.O_NEG
        assert questionnaire.contact_number == "+1 555 0100"
        assert questionnaire.gender == Gender.FEMALE
        assert questionnaire.last_donation_date == date(2024, 1, 10)
        assert questionnaire.willing_for_emergency is True

    def test_accepts_snake_case_names(self):
        questionnaire = DonorQuestionnaire(blood_type="AB+", contact_number="555")

        assert questionnaire.blood_type == BloodType.AB_POS

    def test_defaults(self):
        questionnaire = DonorQuestionnaire()

        assert questionnaire.blood_type is None
        assert questionnaire.contact_number == ""
        assert questionnaire.hiv_status is False
        assert questionnaire.rh_variants == RhVariants()
        assert questionnaire.preferred_contact_method == ContactMethod.PHONE
        assert questionnaire.willing_for_emergency is True

    def test_blood_type_normalized(self):
        assert DonorQuestionnaire(bloodType=" o+ ").blood_type == BloodType.O_POS
        assert DonorQuestionnaire(bloodType="  ").blood_type is None

    def test_invalid_blood_type_rejected(self):
        with pytest.raises(ValidationError):
            DonorQuestionnaire(bloodType="Z+")

    @pytest.mark.parametrize("field", ["weight", "hemoglobinLevel"])
    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_numbers_rejected(self, eligible_form_data, field, value):
        with pytest.raises(ValidationError) as exc_info:
            DonorQuestionnaire.model_validate({**eligible_form_data, field: value})

        assert exc_info.value.errors()[0]["loc"] == (field,)

    def test_gender_and_contact_method_case_insensitive(self):
        questionnaire = DonorQuestionnaire(gender="Male", preferredContactMethod="EMAIL")

        assert questionnaire.gender == Gender.MALE
        assert questionnaire.preferred_contact_method == ContactMethod.EMAIL

    def test_blank_contact_method_falls_back_to_phone(self):
        assert DonorQuestionnaire(preferredContactMethod="").preferred_contact_method == ContactMethod.PHONE

    def test_blank_optional_inputs_become_none(self):
        questionnaire = DonorQuestionnaire(age="", weight=" ", lastDonationDate="", allergies="")

        assert questionnaire.age is None
        assert questionnaire.weight is None
        assert questionnaire.last_donation_date is None
        assert questionnaire.allergies is None

    def test_rh_variant_names_are_case_sensitive(self):
        questionnaire = DonorQuestionnaire(rhVariants={"C": True, "e": True})

        assert questionnaire.rh_variants.C is True
        assert questionnaire.rh_variants.c is False
        assert questionnaire.rh_variants.e is True

    def test_serializes_camel_case(self, eligible_form_data):
        dumped = DonorQuestionnaire.model_validate(eligible_form_data).model_dump(by_alias=True)

        assert "bloodType" in dumped
        assert "hivStatus" in dumped
        assert "blood_type" not in dumped


class TestDonationListing:
    """Test the stored listing entity."""

    def test_defaults(self):
        listing = DonationListing(submissionId="sub-1", bloodType="A-")

        assert listing.donor_name == "Anonymous donor"
        assert listing.status == ListingStatus.AVAILABLE
        assert listing.requester_id == ""
        assert isinstance(listing.listed_on, datetime)
        assert listing.is_available() is True

    def test_submission_id_required(self):
        with pytest.raises(ValidationError):
            DonationListing(bloodType="A-")

    def test_blank_donor_name_rejected(self):
        with pytest.raises(ValidationError):
            DonationListing(submissionId="sub-1", donorName="   ")

    def test_soft_deleted_listing_is_unavailable(self):
        listing = DonationListing(submissionId="sub-1", deletedAt=datetime(2024, 5, 1))

        assert listing.is_deleted() is True
        assert listing.is_available() is False

    def test_completed_listing_is_unavailable(self):
        listing = DonationListing(submissionId="sub-1", status="completed")

        assert listing.is_available() is False


class TestRequestModels:
    """Test request models."""

    def test_blank_submission_metadata_becomes_none(self):
        request = CreateDonationListingRequest(submissionId="  ", donorName="")

        assert request.submission_id is None
        assert request.donor_name is None

    def test_submission_metadata_trimmed(self):
        request = CreateDonationListingRequest(submissionId=" abc-123 ", donorName=" Ana ")

        assert request.submission_id == "abc-123"
        assert request.donor_name == "Ana"

    def test_listing_filters_defaults(self):
        filters = ListingFilters()

        assert filters.page == 1
        assert filters.page_size == 20
        assert filters.blood_type is None

    def test_listing_filters_repairs_decoded_plus(self):
        """'O+' in a query string decodes to 'O '."""
        assert ListingFilters(bloodType="O ").blood_type == BloodType.O_POS
        assert ListingFilters(bloodType="ab-").blood_type == BloodType.AB_NEG

    def test_listing_filters_page_size_bounds(self):
        with pytest.raises(ValidationError):
            ListingFilters(pageSize=101)
        with pytest.raises(ValidationError):
            ListingFilters(page=0)
