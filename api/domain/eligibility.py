# SPDX-License-Identifier: Apache-2.0

"""
Donor eligibility domain logic.

This module contains pure functions that validate a donor questionnaire and
classify the donor as eligible, temporarily deferred or permanently deferred.
Rules are kept in explicit ordered lists and evaluated top to bottom, so the
reasons always come out in questionnaire field order.
"""

import os
from typing import List, Dict, Optional, Callable, Tuple
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from models.entities import DonorQuestionnaire
from models.enums import EligibilityStatus, Gender


# Plausible ranges; values outside them are validation errors, never deferrals
MAX_PLAUSIBLE_AGE = 120

REQUIRED_FIELDS: Tuple[Tuple[str, str, str], ...] = (
    ("blood_type", "bloodType", "Blood type is required"),
    ("contact_number", "contactNumber", "Contact number is required"),
    ("availability", "availability", "Availability is required"),
    ("location", "location", "Location is required"),
)


class DeferralKind(str, Enum):
    """Severity of a deferral rule."""
    PERMANENT = "permanent"
    TEMPORARY = "temporary"


@dataclass(frozen=True)
class DeferralPolicy:
    """
    Thresholds used by temporary deferral rules.

    Per-gender mappings fall back to the 'default' key when the donor's
    gender is unknown or not listed.
    """
    donation_interval_days: Dict[str, int] = field(default_factory=lambda: {
        Gender.MALE.value: 56,
        Gender.FEMALE.value: 56,
        "default": 56,
    })
    min_hemoglobin: Dict[str, float] = field(default_factory=lambda: {
        Gender.MALE.value: 13.0,
        Gender.FEMALE.value: 12.5,
        "default": 12.5,
    })
    tattoo_deferral_days: int = 90
    vaccination_deferral_days: int = 28
    min_age: int = 18
    min_weight_kg: float = 50.0

    def interval_for(self, gender: Optional[Gender]) -> int:
        """Minimum days between donations for the donor's gender."""
        return _lookup_by_gender(self.donation_interval_days, gender)

    def hemoglobin_for(self, gender: Optional[Gender]) -> float:
        """Minimum hemoglobin (g/dL) for the donor's gender."""
        return _lookup_by_gender(self.min_hemoglobin, gender)

    @classmethod
    def from_env(cls) -> "DeferralPolicy":
        """Build a policy from DEFERRAL_* environment variables over the defaults."""
        defaults = cls()

        def _int(name: str, fallback: int) -> int:
            return int(os.getenv(name, str(fallback)))

        def _float(name: str, fallback: float) -> float:
            return float(os.getenv(name, str(fallback)))

        intervals = {
            key: _int(f"DEFERRAL_INTERVAL_DAYS_{key.upper()}", value)
            for key, value in defaults.donation_interval_days.items()
        }
        hemoglobin = {
            key: _float(f"DEFERRAL_MIN_HEMOGLOBIN_{key.upper()}", value)
            for key, value in defaults.min_hemoglobin.items()
        }

        return cls(
            donation_interval_days=intervals,
            min_hemoglobin=hemoglobin,
            tattoo_deferral_days=_int("DEFERRAL_TATTOO_DAYS", defaults.tattoo_deferral_days),
            vaccination_deferral_days=_int("DEFERRAL_VACCINATION_DAYS", defaults.vaccination_deferral_days),
            min_age=_int("DEFERRAL_MIN_AGE", defaults.min_age),
            min_weight_kg=_float("DEFERRAL_MIN_WEIGHT_KG", defaults.min_weight_kg),
        )


def _lookup_by_gender(values: Dict, gender: Optional[Gender]):
    key = gender.value if isinstance(gender, Gender) else gender
    if key in values:
        return values[key]
    return values["default"]


@dataclass
class EligibilityResult:
    """Result of evaluating a donor questionnaire."""
    status: EligibilityStatus
    reasons: List[str] = field(default_factory=list)
    flags: List[str] = field(default_factory=list)
    advisories: List[str] = field(default_factory=list)

    @property
    def is_eligible(self) -> bool:
        return self.status == EligibilityStatus.ELIGIBLE

    @property
    def blocks_submission(self) -> bool:
        """Permanent deferral is the only outcome that blocks a listing."""
        return self.status == EligibilityStatus.PERMANENTLY_DEFERRED

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "reasons": list(self.reasons),
            "flags": list(self.flags),
            "advisories": list(self.advisories),
        }


RuleCheck = Callable[[DonorQuestionnaire, DeferralPolicy, date], Optional[str]]


@dataclass(frozen=True)
class EligibilityRule:
    """A single deferral rule; check returns the reason when the rule fires."""
    flag: str
    kind: DeferralKind
    check: RuleCheck


def _flag_rule(attr: str, flag: str, kind: DeferralKind, reason: str) -> EligibilityRule:
    def check(q: DonorQuestionnaire, policy: DeferralPolicy, today: date) -> Optional[str]:
        return reason if getattr(q, attr) else None
    return EligibilityRule(flag=flag, kind=kind, check=check)


def _days_since(then: Optional[date], today: date) -> Optional[int]:
    # Future dates are rejected by validation, so they never count here
    if then is None or then > today:
        return None
    return (today - then).days


def _check_age(q: DonorQuestionnaire, policy: DeferralPolicy, today: date) -> Optional[str]:
    if q.age is None or q.age < 0 or q.age > MAX_PLAUSIBLE_AGE:
        return None
    if q.age < policy.min_age:
        return f"Below minimum donor age of {policy.min_age}"
    return None


def _check_weight(q: DonorQuestionnaire, policy: DeferralPolicy, today: date) -> Optional[str]:
    if q.weight is None or q.weight <= 0:
        return None
    if q.weight < policy.min_weight_kg:
        return f"Weight below minimum of {policy.min_weight_kg:g} kg"
    return None


def _check_tattoo(q: DonorQuestionnaire, policy: DeferralPolicy, today: date) -> Optional[str]:
    if not q.recent_tattoo:
        return None
    if q.tattoo_date is None:
        return "Recent tattoo or piercing"
    elapsed = _days_since(q.tattoo_date, today)
    if elapsed is not None and elapsed < policy.tattoo_deferral_days:
        return f"Tattoo or piercing within the last {policy.tattoo_deferral_days} days"
    return None


def _check_vaccination(q: DonorQuestionnaire, policy: DeferralPolicy, today: date) -> Optional[str]:
    if not q.recent_vaccination:
        return None
    if q.vaccination_date is None:
        return "Recent vaccination"
    elapsed = _days_since(q.vaccination_date, today)
    if elapsed is not None and elapsed < policy.vaccination_deferral_days:
        return f"Vaccination within the last {policy.vaccination_deferral_days} days"
    return None


def _check_last_donation(q: DonorQuestionnaire, policy: DeferralPolicy, today: date) -> Optional[str]:
    elapsed = _days_since(q.last_donation_date, today)
    if elapsed is None:
        return None
    interval = policy.interval_for(q.gender)
    if elapsed < interval:
        return f"Last donation {elapsed} days ago; minimum interval is {interval} days"
    return None


def _check_hemoglobin(q: DonorQuestionnaire, policy: DeferralPolicy, today: date) -> Optional[str]:
    if q.hemoglobin_level is None or q.hemoglobin_level <= 0:
        return None
    minimum = policy.hemoglobin_for(q.gender)
    if q.hemoglobin_level < minimum:
        return f"Hemoglobin {q.hemoglobin_level:g} g/dL is below the minimum of {minimum:g} g/dL"
    return None


PERMANENT_RULES: Tuple[EligibilityRule, ...] = (
    _flag_rule("hiv_status", "hivStatus", DeferralKind.PERMANENT, "HIV-positive history"),
    _flag_rule("hepatitis_b", "hepatitisB", DeferralKind.PERMANENT, "Hepatitis B"),
    _flag_rule("hepatitis_c", "hepatitisC", DeferralKind.PERMANENT, "Hepatitis C"),
    _flag_rule("htlv", "htlv", DeferralKind.PERMANENT, "HTLV-positive"),
    _flag_rule("iv_drug_use", "ivDrugUse", DeferralKind.PERMANENT, "History of IV drug use"),
)

TEMPORARY_RULES: Tuple[EligibilityRule, ...] = (
    EligibilityRule("age", DeferralKind.TEMPORARY, _check_age),
    EligibilityRule("weight", DeferralKind.TEMPORARY, _check_weight),
    _flag_rule("recent_cold_flu", "recentColdFlu", DeferralKind.TEMPORARY, "Recent cold or flu"),
    EligibilityRule("recentTattoo", DeferralKind.TEMPORARY, _check_tattoo),
    _flag_rule("recent_surgery", "recentSurgery", DeferralKind.TEMPORARY, "Recent surgery"),
    _flag_rule("pregnant", "pregnant", DeferralKind.TEMPORARY, "Pregnant or recently delivered"),
    EligibilityRule("recentVaccination", DeferralKind.TEMPORARY, _check_vaccination),
    _flag_rule("recent_travel", "recentTravel", DeferralKind.TEMPORARY, "Recent travel pending review"),
    EligibilityRule("lastDonationDate", DeferralKind.TEMPORARY, _check_last_donation),
    EligibilityRule("hemoglobinLevel", DeferralKind.TEMPORARY, _check_hemoglobin),
)


def _apply_rules(
    rules: Tuple[EligibilityRule, ...],
    questionnaire: DonorQuestionnaire,
    policy: DeferralPolicy,
    today: date
) -> Tuple[List[str], List[str]]:
    reasons: List[str] = []
    flags: List[str] = []
    for rule in rules:
        reason = rule.check(questionnaire, policy, today)
        if reason:
            reasons.append(reason)
            flags.append(rule.flag)
    return reasons, flags


def collect_advisories(questionnaire: DonorQuestionnaire) -> List[str]:
    """
    Collect reviewer notes that never change the classification.

    Args:
        questionnaire: Donor questionnaire

    Returns:
        Notes in questionnaire field order
    """
    advisories = []
    if questionnaire.current_medications:
        advisories.append(f"Current medications: {questionnaire.current_medications}")
    if questionnaire.allergies:
        advisories.append(f"Allergies: {questionnaire.allergies}")
    if questionnaire.has_chronic_illness:
        details = questionnaire.chronic_illness_details
        advisories.append(f"Chronic illness: {details}" if details else "Chronic illness reported")
    return advisories


def evaluate(
    questionnaire: DonorQuestionnaire,
    policy: Optional[DeferralPolicy] = None,
    today: Optional[date] = None
) -> EligibilityResult:
    """
    Classify a donor from their questionnaire answers.

    Permanent rules run first and, when any fires, the remaining rules are
    skipped. Otherwise temporary rules run; if none fires the donor is eligible.

    Args:
        questionnaire: Donor questionnaire
        policy: Deferral thresholds, defaults to DeferralPolicy()
        today: Reference date for elapsed-time rules, defaults to date.today()

    Returns:
        EligibilityResult with status, ordered reasons and triggering flags
    """
    policy = policy or DeferralPolicy()
    today = today or date.today()
    advisories = collect_advisories(questionnaire)

    reasons, flags = _apply_rules(PERMANENT_RULES, questionnaire, policy, today)
    if reasons:
        return EligibilityResult(
            status=EligibilityStatus.PERMANENTLY_DEFERRED,
            reasons=reasons,
            flags=flags,
            advisories=advisories
        )

    reasons, flags = _apply_rules(TEMPORARY_RULES, questionnaire, policy, today)
    if reasons:
        return EligibilityResult(
            status=EligibilityStatus.TEMPORARILY_DEFERRED,
            reasons=reasons,
            flags=flags,
            advisories=advisories
        )

    return EligibilityResult(status=EligibilityStatus.ELIGIBLE, advisories=advisories)


def validate_questionnaire(
    questionnaire: DonorQuestionnaire,
    today: Optional[date] = None
) -> Dict[str, str]:
    """
    Validate a questionnaire before evaluation.

    Args:
        questionnaire: Donor questionnaire
        today: Reference date for future-date checks

    Returns:
        Mapping of camelCase field name to error message; empty when valid
    """
    today = today or date.today()
    errors: Dict[str, str] = {}

    for attr, key, message in REQUIRED_FIELDS:
        if not getattr(questionnaire, attr):
            errors[key] = message

    if questionnaire.age is not None and not 0 <= questionnaire.age <= MAX_PLAUSIBLE_AGE:
        errors["age"] = f"Age must be between 0 and {MAX_PLAUSIBLE_AGE}"

    if questionnaire.weight is not None and questionnaire.weight <= 0:
        errors["weight"] = "Weight must be greater than 0"

    if questionnaire.hemoglobin_level is not None and questionnaire.hemoglobin_level <= 0:
        errors["hemoglobinLevel"] = "Hemoglobin level must be greater than 0"

    if questionnaire.total_donations is not None and questionnaire.total_donations < 0:
        errors["totalDonations"] = "Total donations cannot be negative"

    for attr, key, label in (
        ("tattoo_date", "tattooDate", "Tattoo date"),
        ("vaccination_date", "vaccinationDate", "Vaccination date"),
        ("last_donation_date", "lastDonationDate", "Last donation date"),
    ):
        value = getattr(questionnaire, attr)
        if value is not None and value > today:
            errors[key] = f"{label} cannot be in the future"

    return errors
