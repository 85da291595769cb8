# SPDX-License-Identifier: Apache-2.0

"""
Eligibility check endpoint.

Lets the donor form classify a questionnaire before anything is stored.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from domain import eligibility as eligibility_domain
from middleware.error_handler import ValidationException
from models.requests import EligibilityCheckRequest
from models.responses import EligibilityResultResponse

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

eligibility_tag = Tag(name="Eligibility", description="Donor eligibility screening")
eligibility_bp = APIBlueprint(
    'eligibility',
    __name__,
    url_prefix='/api/eligibility',
    abp_tags=[eligibility_tag]
)


@eligibility_bp.post('/check', responses={200: EligibilityResultResponse})
def check_eligibility():
    """
    Check donor eligibility.

    Validates the questionnaire and returns its classification with ordered
    deferral reasons and reviewer advisories. Nothing is persisted.
    """
    questionnaire = current_app.validation_middleware.parse_json_body(EligibilityCheckRequest)

    with tracer.start_as_current_span("domain.eligibility.check") as span:
        field_errors = eligibility_domain.validate_questionnaire(questionnaire)
        if field_errors:
            span.set_attribute("eligibility.invalid_fields", len(field_errors))
            raise ValidationException(
                "Questionnaire has missing or invalid fields",
                current_app.validation_middleware.format_field_errors(field_errors)
            )

        result = eligibility_domain.evaluate(questionnaire, current_app.deferral_policy)
        span.set_attributes({
            "eligibility.status": result.status.value,
            "eligibility.reason_count": len(result.reasons)
        })

    logger.info(
        "Eligibility checked",
        extra={"eligibility_status": result.status.value, "flags": result.flags}
    )

    body = EligibilityResultResponse(**result.to_dict()).model_dump(by_alias=True)
    return jsonify(current_app.hal_formatter.format_eligibility_result(body)), 200
