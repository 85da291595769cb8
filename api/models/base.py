# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base models with common fields and camelCase wire aliases.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId


def generate_object_id() -> str:
    """Generate a new MongoDB ObjectId as string."""
    return str(ObjectId())


class CamelModel(BaseModel):
    """Model that reads and writes camelCase keys, as sent by the listing form."""

    model_config = ConfigDict(
        # Accept both camelCase aliases and snake_case field names
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        # Form numbers must be finite; JSON NaN and Infinity are rejected
        allow_inf_nan=False
    )


class EntityFields(CamelModel):
    """Common fields for stored documents."""

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=datetime.utcnow, description="Last update timestamp")
    deleted_at: Optional[datetime] = Field(None, description="Soft delete timestamp")
    schema_version: int = Field(default=1, description="Schema version for migrations")

    def is_deleted(self) -> bool:
        """Check if entity is soft deleted."""
        return self.deleted_at is not None
