# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - External integrations and side effects.
"""

from .mongodb import MongoDBService, PaginationResult
from .redis import RedisService, RedisSubmissionGuard
from .listings import MongoListingRepository, ListingPersistenceError

__all__ = [
    "MongoDBService",
    "PaginationResult",
    "RedisService",
    "RedisSubmissionGuard",
    "MongoListingRepository",
    "ListingPersistenceError"
]
