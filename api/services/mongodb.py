# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling and soft-delete aware queries.
"""

import os
import logging
from datetime import datetime
from typing import List, Dict, Optional, Any
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from bson import ObjectId
from bson.errors import InvalidId

logger = logging.getLogger(__name__)

LISTINGS_COLLECTION = "donation_listings"


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Dict], total: int, page: int, page_size: int):
        self.items = items
        self.total = total
        self.page = page
        self.page_size = page_size
        self.total_pages = (total + page_size - 1) // page_size
        self.has_next = page < self.total_pages
        self.has_prev = page > 1


class MongoDBService:
    """MongoDB service with connection pooling."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/blood_donor_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'blood_donor_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def _validate_object_id(self, doc_id: str) -> ObjectId:
        """Validate and convert string ID to ObjectId."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    def _build_query(self, filters: Dict = None, include_deleted: bool = False) -> Dict:
        """Build query excluding soft-deleted records unless asked otherwise."""
        query = {}

        if not include_deleted:
            query["deletedAt"] = None

        if filters:
            query.update(filters)

        return query

    def _add_timestamps(self, document: Dict, is_update: bool = False) -> Dict:
        """Add creation and update timestamps to document."""
        now = datetime.utcnow()

        if not is_update:
            document["createdAt"] = now

        document["updatedAt"] = now
        return document

    @staticmethod
    def _to_public(document: Dict) -> Dict:
        """Replace Mongo's _id with a string id for JSON serialization."""
        if "_id" in document:
            document["id"] = str(document["_id"])
            del document["_id"]
        return document

    # CRUD Operations

    def create(self, collection: str, document: Dict) -> str:
        """
        Create a new document.

        Raises:
            DuplicateKeyError: when a unique index rejects the document
        """
        try:
            document = self._add_timestamps(dict(document))

            if "_id" not in document:
                document["_id"] = ObjectId()

            collection_obj = self.get_collection(collection)
            result = collection_obj.insert_one(document)

            logger.info(f"Created document in {collection}: {result.inserted_id}")
            return str(result.inserted_id)

        except DuplicateKeyError as e:
            logger.warning(f"Duplicate key error in {collection}: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise

    def find_one(self, collection: str, doc_id: str, include_deleted: bool = False) -> Optional[Dict]:
        """Find a single document by ID."""
        try:
            object_id = self._validate_object_id(doc_id)
            query = self._build_query({"_id": object_id}, include_deleted)

            document = self.get_collection(collection).find_one(query)

            if document:
                logger.debug(f"Found document {doc_id} in {collection}")
                return self._to_public(document)

            logger.debug(f"Document {doc_id} not found in {collection}")
            return None

        except ValueError as e:
            logger.warning(f"Invalid document ID {doc_id}: {e}")
            return None
        except Exception as e:
            logger.error(f"Failed to find document {doc_id} in {collection}: {e}")
            raise

    def find_one_by(self, collection: str, filters: Dict, include_deleted: bool = False) -> Optional[Dict]:
        """Find a single document matching filters."""
        try:
            query = self._build_query(filters, include_deleted)
            document = self.get_collection(collection).find_one(query)
            return self._to_public(document) if document else None
        except Exception as e:
            logger.error(f"Failed to find document in {collection}: {e}")
            raise

    def paginate(self, collection: str, page: int = 1, page_size: int = 20,
                 filters: Dict = None, sort_by: str = "createdAt", sort_order: int = -1,
                 include_deleted: bool = False) -> PaginationResult:
        """Paginate documents with sorting and filtering."""
        try:
            query = self._build_query(filters, include_deleted)
            collection_obj = self.get_collection(collection)

            skip = (page - 1) * page_size
            total = collection_obj.count_documents(query)

            cursor = collection_obj.find(query).sort(sort_by, sort_order).skip(skip).limit(page_size)
            documents = [self._to_public(doc) for doc in cursor]

            logger.debug(f"Paginated {len(documents)} documents from {collection} (page {page})")
            return PaginationResult(documents, total, page, page_size)

        except Exception as e:
            logger.error(f"Failed to paginate documents in {collection}: {e}")
            raise

    # Index Management

    def create_indexes(self) -> None:
        """Create indexes for the donation listings collection."""
        try:
            logger.info("Creating MongoDB indexes...")

            listings = self.get_collection(LISTINGS_COLLECTION)
            # One listing per submission token
            listings.create_index("submissionId", unique=True)
            listings.create_index([("bloodType", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)])
            listings.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
            listings.create_index("deletedAt")

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise
