"""
Health Check Service

Reports the health of the listing store (MongoDB) and the submission lock
store (Redis).
"""

import os
import time
from datetime import datetime
from typing import Dict, Any
from opentelemetry import trace

from services.mongodb import MongoDBService
from services.redis import RedisService

tracer = trace.get_tracer(__name__)

SERVICE_NAME = "blood-donor-api"
SERVICE_VERSION = "1.0.0"


class HealthCheckService:
    """Service for dependency health monitoring."""

    def __init__(self, mongodb_service: MongoDBService, redis_service: RedisService):
        self.mongodb_service = mongodb_service
        self.redis_service = redis_service
        self.service_version = SERVICE_VERSION

    def get_comprehensive_health(self) -> Dict[str, Any]:
        """Get health status including all dependencies."""
        with tracer.start_as_current_span("health.comprehensive_check") as span:
            start_time = time.time()

            mongodb_health = self._check_mongodb_health()
            redis_health = self._check_redis_health()

            overall_status = self._determine_overall_status(
                mongodb_health["status"], redis_health["status"]
            )

            response_time_ms = round((time.time() - start_time) * 1000, 2)

            health_data = {
                "status": overall_status,
                "service": SERVICE_NAME,
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": datetime.utcnow().isoformat() + "Z",
                "response_time_ms": response_time_ms,
                "dependencies": {
                    "mongodb": mongodb_health,
                    "redis": redis_health
                },
                "configuration": self._get_configuration_status()
            }

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms,
                "health.mongodb_status": mongodb_health["status"],
                "health.redis_status": redis_health["status"]
            })

            return health_data

    def _check_mongodb_health(self) -> Dict[str, Any]:
        """Check MongoDB connectivity."""
        with tracer.start_as_current_span("health.mongodb_check") as span:
            start_time = time.time()
            result = self.mongodb_service.health_check()
            result["response_time_ms"] = round((time.time() - start_time) * 1000, 2)
            result["last_check"] = datetime.utcnow().isoformat() + "Z"

            span.set_attribute("mongodb.status", result["status"])
            return result

    def _check_redis_health(self) -> Dict[str, Any]:
        """Check Redis connectivity; an unconfigured Redis reports unavailable."""
        with tracer.start_as_current_span("health.redis_check") as span:
            result = self.redis_service.health_check()
            result["last_check"] = datetime.utcnow().isoformat() + "Z"

            span.set_attribute("redis.status", result["status"])
            return result

    def _get_configuration_status(self) -> Dict[str, Any]:
        """Get configuration presence flags."""
        return {
            "mongodb_uri_configured": bool(os.getenv('MONGODB_URI')),
            "redis_configured": bool(os.getenv('REDIS_URL')),
            "environment": os.getenv('ENVIRONMENT', 'development')
        }

    def _determine_overall_status(self, mongodb_status: str, redis_status: str) -> str:
        """
        Listings cannot be stored without MongoDB, so it decides between
        healthy and unhealthy. A Redis problem only degrades duplicate
        suppression to a single instance.
        """
        if mongodb_status != "healthy":
            return "unhealthy"
        if redis_status != "healthy":
            return "degraded"
        return "healthy"

    @staticmethod
    def status_code_for(overall_status: str) -> int:
        """Map an overall status to an HTTP status code; degraded still serves."""
        return 503 if overall_status == "unhealthy" else 200
