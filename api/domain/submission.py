# SPDX-License-Identifier: Apache-2.0

"""
Donation listing submission workflow.

Runs questionnaire validation and eligibility evaluation, then hands accepted
submissions to the listing persistence collaborator. A duplicate of a
submission whose persistence call is still outstanding is suppressed.
"""

import hashlib
import logging
import threading
import time
import uuid
from typing import Dict, Any, Optional, Protocol
from dataclasses import dataclass, field
from datetime import date

from models.entities import DonorQuestionnaire, DonationListing
from models.enums import SubmissionStatus
from domain.eligibility import (
    DeferralPolicy, EligibilityResult, evaluate, validate_questionnaire
)

logger = logging.getLogger(__name__)


class ListingPersistenceError(Exception):
    """Raised when the listing persistence collaborator fails (network, auth or server)."""
    pass


class SubmissionConflictError(Exception):
    """Raised when a submission token belongs to a listing that can no longer be returned."""
    pass


@dataclass
class ListingDraft:
    """Creation request handed to the persistence collaborator."""
    submission_id: str
    questionnaire: DonorQuestionnaire
    eligibility: EligibilityResult
    metadata: Dict[str, Any] = field(default_factory=dict)


class ListingPersistence(Protocol):
    """Collaborator that stores accepted donation listings."""

    def create_listing(self, draft: ListingDraft) -> DonationListing:
        ...


class SubmissionGuard(Protocol):
    """Marks a submission as in flight so duplicates can be suppressed."""

    def acquire(self, key: str) -> bool:
        ...

    def release(self, key: str) -> None:
        ...


class InProgressGuard:
    """
    Single in-progress flag: one outstanding submission per orchestrator.

    The key is ignored. The flag is set with a non-blocking lock acquire so
    that a threaded server cannot let two callers through at once.
    """

    def __init__(self):
        self._flag = threading.Lock()

    @property
    def in_progress(self) -> bool:
        return self._flag.locked()

    def acquire(self, key: str) -> bool:
        return self._flag.acquire(blocking=False)

    def release(self, key: str) -> None:
        if self._flag.locked():
            self._flag.release()


@dataclass
class SubmissionOutcome:
    """Result of a submission attempt."""
    status: SubmissionStatus
    submission_id: Optional[str] = None
    field_errors: Dict[str, str] = field(default_factory=dict)
    eligibility: Optional[EligibilityResult] = None
    listing: Optional[DonationListing] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == SubmissionStatus.CREATED


def generate_submission_id() -> str:
    """Generate a submission token: millisecond timestamp plus random suffix."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def submission_fingerprint(questionnaire: DonorQuestionnaire) -> str:
    """
    Stable key for a questionnaire sent without a submission token.

    Built from the donor's blood type, contact number and location, so a
    repeated click on the same form maps to the same guard key.
    """
    parts = (
        questionnaire.blood_type.value if questionnaire.blood_type else "",
        "".join(ch for ch in questionnaire.contact_number if ch.isalnum()),
        questionnaire.location.strip().lower(),
    )
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
    return f"fp-{digest[:32]}"


class SubmissionOrchestrator:
    """Validate, evaluate and forward donation listing submissions."""

    def __init__(
        self,
        persistence: ListingPersistence,
        guard: Optional[SubmissionGuard] = None,
        policy: Optional[DeferralPolicy] = None
    ):
        self.persistence = persistence
        self.guard = guard or InProgressGuard()
        self.policy = policy or DeferralPolicy()

    def submit(
        self,
        questionnaire: DonorQuestionnaire,
        submission_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        today: Optional[date] = None
    ) -> SubmissionOutcome:
        """
        Submit a donation listing.

        Validation and evaluation run unguarded; only the persistence call is
        guarded, keyed by the submission token or, when the client sent none,
        by the questionnaire fingerprint.

        Args:
            questionnaire: Donor questionnaire from the form
            submission_id: Client token for deduplication, generated when absent
            metadata: Extra listing fields such as donor_name
            today: Reference date for elapsed-time rules

        Returns:
            SubmissionOutcome describing what happened
        """
        field_errors = validate_questionnaire(questionnaire, today)
        if field_errors:
            return SubmissionOutcome(
                status=SubmissionStatus.INVALID,
                submission_id=submission_id,
                field_errors=field_errors,
                error_message="Required fields are missing or invalid"
            )

        eligibility = evaluate(questionnaire, self.policy, today)
        if eligibility.blocks_submission:
            logger.info(
                "Submission blocked by permanent deferral",
                extra={"submission_id": submission_id, "flags": eligibility.flags}
            )
            return SubmissionOutcome(
                status=SubmissionStatus.PERMANENTLY_DEFERRED,
                submission_id=submission_id,
                eligibility=eligibility,
                error_message="Donor is permanently deferred"
            )

        guard_key = submission_id or submission_fingerprint(questionnaire)
        submission_id = submission_id or generate_submission_id()

        if not self.guard.acquire(guard_key):
            logger.warning(
                "Duplicate submission suppressed while a prior call is outstanding",
                extra={"submission_id": submission_id, "guard_key": guard_key}
            )
            return SubmissionOutcome(
                status=SubmissionStatus.SUPPRESSED,
                submission_id=submission_id,
                eligibility=eligibility,
                error_message="A submission is already in progress"
            )

        draft = ListingDraft(
            submission_id=submission_id,
            questionnaire=questionnaire,
            eligibility=eligibility,
            metadata=metadata or {}
        )

        try:
            return self._persist(draft)
        finally:
            self.guard.release(guard_key)

    def _persist(self, draft: ListingDraft) -> SubmissionOutcome:
        submission_id = draft.submission_id
        try:
            listing = self.persistence.create_listing(draft)
        except SubmissionConflictError as e:
            logger.warning(
                "Submission token conflicts with a stored listing",
                extra={"submission_id": submission_id, "error": str(e)}
            )
            return SubmissionOutcome(
                status=SubmissionStatus.CONFLICT,
                submission_id=submission_id,
                eligibility=draft.eligibility,
                error_message=str(e)
            )
        except ListingPersistenceError as e:
            logger.error(
                "Listing persistence failed",
                extra={"submission_id": submission_id, "error": str(e)}
            )
            return SubmissionOutcome(
                status=SubmissionStatus.FAILED,
                submission_id=submission_id,
                eligibility=draft.eligibility,
                error_message=f"Failed to list donation: {str(e)}"
            )

        logger.info(
            "Donation listing created",
            extra={
                "submission_id": submission_id,
                "listing_id": listing.id,
                "eligibility_status": draft.eligibility.status.value
            }
        )
        return SubmissionOutcome(
            status=SubmissionStatus.CREATED,
            submission_id=submission_id,
            eligibility=draft.eligibility,
            listing=listing
        )
