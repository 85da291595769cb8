"""
Blood Donor Listing API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support, wires the
eligibility and submission services, and registers the HTTP routes.
"""

import os
import logging
from datetime import datetime
from flask import jsonify, make_response, current_app, request
from flask_openapi3 import OpenAPI, Info, Tag
from pydantic import ValidationError

from observability.config import setup_observability
from observability.middleware import add_observability_middleware
from middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from middleware.validation import ValidationMiddleware
from domain.eligibility import DeferralPolicy
from domain.submission import SubmissionOrchestrator
from services.hal import create_hal_formatter
from services.health import HealthCheckService, SERVICE_NAME, SERVICE_VERSION
from services.listings import MongoListingRepository
from services.mongodb import MongoDBService
from services.redis import RedisService, RedisSubmissionGuard, DEFAULT_LOCK_TTL_SECONDS

logger = logging.getLogger(__name__)

info = Info(
    title="Blood Donor Listing API",
    version=SERVICE_VERSION,
    description="Donor eligibility screening and blood donation listings with HAL+JSON responses"
)

health_tag = Tag(name="Health", description="System health and status")


def _query_validation_error(e: ValidationError):
    """Render query and path validation failures as problem documents."""
    body = current_app.hal_formatter.format_validation_error(
        "Request parameters failed validation",
        request.path,
        current_app.validation_middleware.format_validation_errors(e)
    )
    return make_response(jsonify(body), 400)


def load_config(app: OpenAPI) -> None:
    """Read application settings from the environment."""
    app.config['ENVIRONMENT'] = os.getenv('ENVIRONMENT', 'development')
    app.config['DEBUG'] = app.config['ENVIRONMENT'] == 'development'
    app.config['DOCS_ENABLED'] = os.getenv('DOCS_ENABLED', 'true').lower() == 'true'

    # Database configuration
    app.config['MONGODB_URI'] = os.getenv('MONGODB_URI', 'mongodb://localhost:27017/blood_donor_dev')
    app.config['MONGODB_DATABASE'] = os.getenv('MONGODB_DATABASE', 'blood_donor_dev')
    app.config['MONGODB_CREATE_INDEXES'] = os.getenv('MONGODB_CREATE_INDEXES', 'true').lower() == 'true'
    app.config['REDIS_URL'] = os.getenv('REDIS_URL', '')
    app.config['REDIS_TOKEN'] = os.getenv('REDIS_TOKEN', '')

    # Feature flags
    app.config['OTEL_ENABLED'] = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'

    # API configuration
    app.config['BASE_URL'] = os.getenv('BASE_URL', 'http://localhost:5000')
    app.config['SUBMISSION_LOCK_TTL_SECONDS'] = int(
        os.getenv('SUBMISSION_LOCK_TTL_SECONDS', str(DEFAULT_LOCK_TTL_SECONDS))
    )


def create_app(mongodb_service: MongoDBService = None, redis_service: RedisService = None,
               deferral_policy: DeferralPolicy = None) -> OpenAPI:
    """
    Build the application.

    Services default to ones configured from the environment; tests pass
    their own.
    """
    setup_observability()

    app = OpenAPI(
        __name__,
        info=info,
        validation_error_status=400,
        validation_error_callback=_query_validation_error
    )
    load_config(app)

    add_observability_middleware(app)

    # Initialize services
    if mongodb_service is None:
        mongodb_service = MongoDBService(app.config['MONGODB_URI'], app.config['MONGODB_DATABASE'])
        if app.config['MONGODB_CREATE_INDEXES']:
            try:
                mongodb_service.create_indexes()
            except Exception as e:
                logger.warning(f"Skipping index creation, MongoDB unreachable: {e}")

    if redis_service is None:
        redis_service = RedisService(app.config['REDIS_URL'] or None, app.config['REDIS_TOKEN'] or None)

    policy = deferral_policy or DeferralPolicy.from_env()
    listing_repository = MongoListingRepository(mongodb_service)
    submission_guard = RedisSubmissionGuard(redis_service, app.config['SUBMISSION_LOCK_TTL_SECONDS'])

    hal_formatter = create_hal_formatter(app.config['BASE_URL'])
    health_service = HealthCheckService(mongodb_service, redis_service)

    ErrorHandlerMiddleware(app, app.config['BASE_URL'])
    register_custom_error_handlers(app, hal_formatter)

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.redis_service = redis_service
    app.deferral_policy = policy
    app.listing_repository = listing_repository
    app.submission_orchestrator = SubmissionOrchestrator(listing_repository, submission_guard, policy)
    app.hal_formatter = hal_formatter
    app.health_service = health_service
    app.validation_middleware = ValidationMiddleware()

    from routes.donations import donations_bp
    from routes.eligibility import eligibility_bp

    app.register_api(donations_bp)
    app.register_api(eligibility_bp)

    @app.get('/api/healthz', tags=[health_tag])
    def health_check():
        """Dependency health for MongoDB and Redis."""
        try:
            health_data = health_service.get_comprehensive_health()
            status_code = health_service.status_code_for(health_data["status"])
        except Exception as e:
            logger.error(f"Health check service failed: {e}", exc_info=True)
            health_data = {
                "status": "unhealthy",
                "service": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "environment": app.config['ENVIRONMENT'],
                "timestamp": datetime.utcnow().isoformat() + "Z",
                "error": f"Health check service failed: {str(e)}"
            }
            status_code = 503

        links = {'self': hal_formatter.builder.link_builder.build_self_link('/api/healthz')}
        return jsonify(hal_formatter.builder.build_resource_response(health_data, links)), status_code

    logger.info(
        "Application created",
        extra={"environment": app.config['ENVIRONMENT'], "base_url": app.config['BASE_URL']}
    )
    return app


app = create_app()


if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', '5000')),
        debug=app.config['DEBUG']
    )
