# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from datetime import date
from typing import Dict, Any, List
from unittest.mock import MagicMock

# Set test environment before any application module is imported
os.environ['ENVIRONMENT'] = 'test'
os.environ['MONGODB_DATABASE'] = 'blood_donor_test'
os.environ['MONGODB_CREATE_INDEXES'] = 'false'
os.environ['OTEL_ENABLED'] = 'false'
os.environ['REDIS_URL'] = ''
os.environ['BASE_URL'] = 'http://localhost:5000'

from domain.eligibility import DeferralPolicy
from domain.submission import ListingDraft, ListingPersistenceError
from models.entities import DonorQuestionnaire, DonationListing
from services.listings import build_listing
from services.mongodb import MongoDBService
from services.redis import RedisService

TODAY = date(2024, 6, 1)


@pytest.fixture
def today() -> date:
    """Fixed reference date for elapsed-time rules."""
    return TODAY


@pytest.fixture
def eligible_form_data() -> Dict[str, Any]:
    """Form payload for a donor with no deferring answers."""
    return {
        "bloodType": "O-",
        "contactNumber": "+1 555 0100",
        "availability": "Weekday mornings",
        "location": "Springfield General Hospital",
        "age": 34,
        "gender": "female",
        "weight": 68.5,
        "hemoglobinLevel": 13.4,
        "lastDonationDate": "2024-01-10",
        "totalDonations": 5,
        "willingForEmergency": True,
        "preferredContactMethod": "phone"
    }


@pytest.fixture
def make_questionnaire(eligible_form_data):
    """Build a questionnaire from the eligible payload plus overrides."""
    def _make(**overrides) -> DonorQuestionnaire:
        return DonorQuestionnaire.model_validate({**eligible_form_data, **overrides})
    return _make


@pytest.fixture
def policy() -> DeferralPolicy:
    """Default deferral thresholds."""
    return DeferralPolicy()


class FakeListingPersistence:
    """In-memory listing persistence that records every creation call."""

    def __init__(self, fail_times: int = 0):
        self.calls: List[ListingDraft] = []
        self.fail_times = fail_times
        self.on_create = None

    def create_listing(self, draft: ListingDraft) -> DonationListing:
        self.calls.append(draft)
        if self.on_create:
            self.on_create(draft)
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ListingPersistenceError("listing store unreachable")
        return build_listing(draft)


@pytest.fixture
def fake_persistence() -> FakeListingPersistence:
    """Listing persistence double."""
    return FakeListingPersistence()


@pytest.fixture
def mock_mongodb_service():
    """MongoDB service double with a mocked collection."""
    service = MagicMock(spec=MongoDBService)
    service.health_check.return_value = {"status": "healthy", "ping": True, "database": "blood_donor_test"}
    return service


@pytest.fixture
def disabled_redis_service() -> RedisService:
    """Redis service with no REDIS_URL configured."""
    return RedisService()


@pytest.fixture
def app(mock_mongodb_service, disabled_redis_service, policy):
    """Flask application wired to test doubles."""
    from app import create_app

    application = create_app(
        mongodb_service=mock_mongodb_service,
        redis_service=disabled_redis_service,
        deferral_policy=policy
    )
    application.config['TESTING'] = True
    return application


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()
