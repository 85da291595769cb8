# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation helpers using Pydantic models.
Parses JSON request bodies and formats field errors for problem documents.
"""

from flask import request
from typing import Type, TypeVar, Dict, Any, List
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging
import math

from middleware.error_handler import ValidationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)


def _json_safe(value: Any) -> Any:
    # NaN and Infinity have no JSON form
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    return value


class ValidationMiddleware:
    """Request body parsing with uniform validation errors."""

    def format_validation_errors(self, validation_error: ValidationError) -> List[Dict[str, Any]]:
        """
        Format Pydantic validation errors for API response.

        Args:
            validation_error: Pydantic ValidationError

        Returns:
            List of formatted error dictionaries
        """
        errors = []

        for error in validation_error.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field_path,
                "message": error["msg"],
                "type": error["type"],
                "input": _json_safe(error.get("input"))
            })

        return errors

    def format_field_errors(self, field_errors: Dict[str, str]) -> List[Dict[str, Any]]:
        """Format questionnaire field errors (field key to message) the same way."""
        return [
            {"field": field, "message": message, "type": "value_error"}
            for field, message in field_errors.items()
        ]

    def parse_json_body(self, model_class: Type[M]) -> M:
        """
        Parse the current request body into model_class.

        Raises:
            ValidationException: for a non-JSON body or a schema mismatch
        """
        with tracer.start_as_current_span("validation.parse_json_body") as span:
            span.set_attributes({
                "validation.model": model_class.__name__,
                "http.method": request.method,
                "http.path": request.path
            })

            json_data = request.get_json(silent=True)
            if not isinstance(json_data, dict):
                span.set_attribute("validation.result", "invalid_json")
                raise ValidationException(
                    "Request body must be a JSON object",
                    [{
                        "field": "body",
                        "message": "Expected a JSON object",
                        "type": "json_error",
                        "input": request.content_type
                    }]
                )

            try:
                validated = model_class.model_validate(json_data)
            except ValidationError as e:
                span.set_attribute("validation.result", "validation_error")
                validation_errors = self.format_validation_errors(e)

                logger.warning(
                    "Request validation failed",
                    extra={
                        "model": model_class.__name__,
                        "path": request.path,
                        "method": request.method,
                        "errors": validation_errors
                    }
                )
                raise ValidationException(
                    f"Request validation failed for {model_class.__name__}",
                    validation_errors
                )

            span.set_attribute("validation.result", "success")
            return validated
