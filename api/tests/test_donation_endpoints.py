# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Integration tests for eligibility and donation listing endpoints.

MongoDB is mocked; Redis is left unconfigured so the in-process guard is used.
"""

import json
import threading

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from services.health import HealthCheckService
from services.mongodb import PaginationResult


def stored_listing_document(**overrides):
    document = {
        "id": str(ObjectId()),
        "submissionId": "sub-1",
        "donorName": "Ana",
        "bloodType": "O-",
        "contactNumber": "555-0100",
        "availability": "Weekends",
        "location": "Springfield",
        "status": "available",
        "eligibilityStatus": "eligible",
        "deferralReasons": [],
        "advisories": [],
        "listedOn": "2024-05-01T10:00:00"
    }
    document.update(overrides)
    return document


class TestEligibilityCheckEndpoint:
    """Test POST /api/eligibility/check."""

    def test_eligible(self, client, eligible_form_data):
        response = client.post('/api/eligibility/check', json=eligible_form_data)

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "eligible"
        assert data["reasons"] == []
        assert "_links" in data

    def test_permanent_deferral_is_a_result(self, client, eligible_form_data):
        response = client.post('/api/eligibility/check', json={**eligible_form_data, "hivStatus": True})

        assert response.status_code == 200
        assert response.get_json()["reasons"] == ["HIV-positive history"]

    def test_missing_fields(self, client, eligible_form_data):
        payload = {**eligible_form_data, "bloodType": "", "contactNumber": ""}

        response = client.post('/api/eligibility/check', json=payload)

        assert response.status_code == 400
        fields = {error["field"] for error in response.get_json()["errors"]}
        assert fields == {"bloodType", "contactNumber"}

    def test_non_json_body(self, client):
        response = client.post('/api/eligibility/check', data="bloodType=O-",
                               content_type="application/x-www-form-urlencoded")

        assert response.status_code == 400
        assert response.get_json()["errors"][0]["field"] == "body"

    def test_non_finite_numbers_rejected(self, client, eligible_form_data):
        """JSON NaN and Infinity never reach screening."""
        payload = {**eligible_form_data, "gender": "male",
                   "hemoglobinLevel": float("nan"), "weight": float("inf")}

        response = client.post('/api/eligibility/check', data=json.dumps(payload),
                               content_type="application/json")

        assert response.status_code == 400
        data = response.get_json()
        assert data["type"].endswith("validation-error")
        assert {error["field"] for error in data["errors"]} == {"hemoglobinLevel", "weight"}


class TestCreateDonationListing:
    """Test POST /api/donations."""

    def test_created(self, client, mock_mongodb_service, eligible_form_data):
        payload = {**eligible_form_data, "donorName": "Ana", "submissionId": "sub-42"}

        response = client.post('/api/donations', json=payload)

        assert response.status_code == 201
        data = response.get_json()
        assert data["submissionId"] == "sub-42"
        assert data["donorName"] == "Ana"
        assert data["eligibilityStatus"] == "eligible"
        assert data["_links"]["self"]["href"].endswith(f"/api/donations/{data['id']}")
        assert response.headers["Location"] == f"/api/donations/{data['id']}"
        mock_mongodb_service.create.assert_called_once()

    def test_temporary_deferral_still_listed(self, client, eligible_form_data):
        response = client.post('/api/donations', json={**eligible_form_data, "pregnant": True})

        assert response.status_code == 201
        data = response.get_json()
        assert data["eligibilityStatus"] == "temporarily_deferred"
        assert data["deferralReasons"] == ["Pregnant or recently delivered"]

    def test_permanent_deferral_rejected(self, client, mock_mongodb_service, eligible_form_data):
        response = client.post('/api/donations', json={**eligible_form_data, "ivDrugUse": True})

        assert response.status_code == 422
        data = response.get_json()
        assert data["reasons"] == ["History of IV drug use"]
        assert data["type"].endswith("permanent-exclusion")
        mock_mongodb_service.create.assert_not_called()

    def test_validation_error(self, client, mock_mongodb_service, eligible_form_data):
        response = client.post('/api/donations', json={**eligible_form_data, "location": ""})

        assert response.status_code == 400
        assert response.get_json()["errors"][0]["field"] == "location"
        mock_mongodb_service.create.assert_not_called()

    def test_schema_error(self, client, eligible_form_data):
        response = client.post('/api/donations', json={**eligible_form_data, "bloodType": "Q+"})

        assert response.status_code == 400
        assert response.get_json()["type"].endswith("validation-error")

    def test_duplicate_in_flight(self, app, client, eligible_form_data):
        """A token already held by another request is rejected with 409."""
        guard = app.submission_orchestrator.guard
        assert guard.acquire("sub-7") is True

        response = client.post('/api/donations', json={**eligible_form_data, "submissionId": "sub-7"})

        assert response.status_code == 409
        guard.release("sub-7")

    def test_replayed_token_returns_existing(self, client, mock_mongodb_service, eligible_form_data):
        existing = stored_listing_document(submissionId="sub-5")
        mock_mongodb_service.create.side_effect = DuplicateKeyError("E11000")
        mock_mongodb_service.find_one_by.return_value = existing

        response = client.post('/api/donations', json={**eligible_form_data, "submissionId": "sub-5"})

        assert response.status_code == 201
        assert response.get_json()["id"] == existing["id"]

    def test_persistence_failure(self, client, mock_mongodb_service, eligible_form_data):
        mock_mongodb_service.create.side_effect = ServerSelectionTimeoutError("no servers")

        response = client.post('/api/donations', json={**eligible_form_data, "submissionId": "sub-8"})

        assert response.status_code == 502
        assert response.get_json()["type"].endswith("external-service-error")

    def test_retry_after_failure(self, client, mock_mongodb_service, eligible_form_data):
        payload = {**eligible_form_data, "submissionId": "sub-3"}
        mock_mongodb_service.create.side_effect = [ServerSelectionTimeoutError("no servers"), "id"]

        assert client.post('/api/donations', json=payload).status_code == 502
        assert client.post('/api/donations', json=payload).status_code == 201

    def test_non_finite_numbers_not_stored(self, client, mock_mongodb_service, eligible_form_data):
        payload = {**eligible_form_data, "hemoglobinLevel": float("nan"), "weight": float("-inf")}

        response = client.post('/api/donations', data=json.dumps(payload), content_type="application/json")

        assert response.status_code == 400
        mock_mongodb_service.create.assert_not_called()

    def test_created_listing_links_resolve(self, client, mock_mongodb_service, eligible_form_data):
        created = client.post('/api/donations', json=eligible_form_data).get_json()
        mock_mongodb_service.find_one.return_value = stored_listing_document(id=created["id"])
        mock_mongodb_service.paginate.return_value = PaginationResult(
            [stored_listing_document()], total=1, page=1, page_size=20
        )

        for link in created["_links"].values():
            path = link["href"].replace("http://localhost:5000", "")
            assert client.get(path).status_code == 200

    def test_concurrent_posts_without_token_create_once(self, app, mock_mongodb_service, eligible_form_data):
        """A double click on a form with no submission token stores one listing."""
        entered = threading.Event()
        release = threading.Event()
        first_status = []

        def slow_create(collection, document):
            entered.set()
            release.wait(timeout=5)
            return str(document["_id"])

        mock_mongodb_service.create.side_effect = slow_create

        def first_post():
            first_status.append(app.test_client().post('/api/donations', json=eligible_form_data).status_code)

        first = threading.Thread(target=first_post)
        first.start()
        assert entered.wait(timeout=5)

        second = app.test_client().post('/api/donations', json=eligible_form_data)
        release.set()
        first.join(timeout=5)

        assert second.status_code == 409
        assert first_status == [201]
        assert mock_mongodb_service.create.call_count == 1

    def test_replayed_token_of_removed_listing_conflicts(self, client, mock_mongodb_service, eligible_form_data):
        mock_mongodb_service.create.side_effect = DuplicateKeyError("E11000")
        mock_mongodb_service.find_one_by.return_value = stored_listing_document(
            submissionId="sub-6", deletedAt="2024-05-20T09:00:00"
        )

        response = client.post('/api/donations', json={**eligible_form_data, "submissionId": "sub-6"})

        assert response.status_code == 409
        assert response.get_json()["type"].endswith("duplicate-submission")


class TestListDonationListings:
    """Test GET /api/donations and GET /api/donations/<id>."""

    def test_list(self, client, mock_mongodb_service):
        mock_mongodb_service.paginate.return_value = PaginationResult(
            [stored_listing_document()], total=1, page=1, page_size=20
        )

        response = client.get('/api/donations?bloodType=O-&status=available')

        assert response.status_code == 200
        data = response.get_json()
        assert data["total"] == 1
        assert data["_embedded"]["items"][0]["bloodType"] == "O-"
        kwargs = mock_mongodb_service.paginate.call_args.kwargs
        assert kwargs["filters"] == {"bloodType": "O-", "status": "available"}

    def test_invalid_filter(self, client):
        response = client.get('/api/donations?bloodType=XY')

        assert response.status_code == 400

    def test_list_failure(self, client, mock_mongodb_service):
        mock_mongodb_service.paginate.side_effect = ServerSelectionTimeoutError("no servers")

        assert client.get('/api/donations').status_code == 502

    def test_get_listing(self, client, mock_mongodb_service):
        document = stored_listing_document()
        mock_mongodb_service.find_one.return_value = document

        response = client.get(f"/api/donations/{document['id']}")

        assert response.status_code == 200
        assert response.get_json()["id"] == document["id"]

    def test_get_missing_listing(self, client, mock_mongodb_service):
        mock_mongodb_service.find_one.return_value = None

        response = client.get(f"/api/donations/{ObjectId()}")

        assert response.status_code == 404
        assert response.get_json()["type"].endswith("resource-not-found")


class TestHealthEndpoint:
    """Test GET /api/healthz."""

    def test_healthy_mongodb_without_redis_is_degraded(self, client):
        response = client.get('/api/healthz')

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "degraded"
        assert data["dependencies"]["redis"]["status"] == "unavailable"

    def test_mongodb_down_is_unhealthy(self, client, mock_mongodb_service):
        mock_mongodb_service.health_check.return_value = {"status": "unhealthy", "error": "down"}

        response = client.get('/api/healthz')

        assert response.status_code == 503
        assert response.get_json()["status"] == "unhealthy"

    @pytest.mark.parametrize("overall,code", [("healthy", 200), ("degraded", 200), ("unhealthy", 503)])
    def test_status_code_for(self, overall, code):
        assert HealthCheckService.status_code_for(overall) == code
