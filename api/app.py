"""
Civic Issues API - Flask Application Factory

This module builds the Flask application with OpenAPI 3.0 support, wires the
store, cache and domain services, and registers middleware and routes for the
department registry and issue workflow.
"""

import os
import atexit
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag
from pymongo.errors import PyMongoError

from observability.config import setup_observability, SERVICE_NAME
from observability.middleware import add_observability_middleware
from middleware.error_handler import (
    ErrorHandlerMiddleware,
    register_custom_error_handlers,
    validation_error_response
)
from middleware.auth import AuthMiddleware
from services.mongodb import MongoDBService
from services.redis import RedisService
from services.auth import AuthService
from services.accounts import AdminDirectory, UserDirectory
from services.departments import DepartmentRegistry
from services.issues import IssueWorkflow

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0.0"

# OpenAPI info
info = Info(
    title="Civic Issues API",
    version=SERVICE_VERSION,
    description="Department registry and issue workflow for civic issue reporting"
)

health_tag = Tag(name="Health", description="System health and status")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 'yes')


def load_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Read configuration from the environment.

    Args:
        overrides: Values taking precedence over the environment (used by tests)

    Returns:
        Configuration dictionary for app.config
    """
    overrides = overrides or {}
    environment = overrides.get('ENVIRONMENT', os.getenv('ENVIRONMENT', 'development'))

    config = {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',

        # Database configuration
        'MONGODB_URI': os.getenv('MONGODB_URI', 'mongodb://localhost:27017/civic_issues_dev'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'civic_issues_dev'),
        'MONGODB_SERVER_SELECTION_TIMEOUT_MS': int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000')),

        # Cache configuration
        'REDIS_URL': os.getenv('REDIS_URL', ''),
        'CACHE_TTL_SECONDS': int(os.getenv('CACHE_TTL_SECONDS', '300')),

        # Security configuration
        'JWT_ACCESS_SECRET': os.getenv('JWT_ACCESS_SECRET', ''),
        'ADMIN_JWT_SECRET': os.getenv('ADMIN_JWT_SECRET', ''),
        'ADMIN_TOKEN_EXPIRES_MINUTES': int(os.getenv('ADMIN_TOKEN_EXPIRES_MINUTES', '15')),
        'ADMIN_REFRESH_JWT_SECRET': os.getenv('ADMIN_REFRESH_JWT_SECRET', ''),
        'ADMIN_REFRESH_EXPIRES_DAYS': int(os.getenv('ADMIN_REFRESH_EXPIRES_DAYS', '7')),

        # Feature flags
        'STRICT_STATUS_TRANSITIONS': _env_flag('STRICT_STATUS_TRANSITIONS', 'true'),
        'OTEL_ENABLED': _env_flag('OTEL_ENABLED', 'true'),
    }
    config.update(overrides)

    if not config['JWT_ACCESS_SECRET']:
        if environment == 'production':
            raise RuntimeError("JWT_ACCESS_SECRET must be set in production")
        logger.warning("JWT_ACCESS_SECRET not set, using development secret")
        config['JWT_ACCESS_SECRET'] = 'dev-secret-key'

    return config


def _connect_store(mongodb_service: MongoDBService, environment: str) -> None:
    """Connect at startup; fatal in production, a warning elsewhere."""
    try:
        mongodb_service.connect()
    except PyMongoError as e:
        if environment == 'production':
            logger.critical(f"MongoDB unavailable at startup: {e}")
            raise
        logger.warning(f"MongoDB unavailable at startup, will retry on demand: {e}")


def create_app(
    config: Optional[Dict[str, Any]] = None,
    mongodb_service: Optional[MongoDBService] = None,
    redis_service: Optional[RedisService] = None
) -> OpenAPI:
    """
    Build the Flask application.

    Args:
        config: Configuration overrides
        mongodb_service: Pre-built store service; connects from config when omitted
        redis_service: Pre-built cache service; connects from config when omitted

    Returns:
        Configured OpenAPI (Flask) application
    """
    settings = load_config(config)
    environment = settings['ENVIRONMENT']

    # Initialize observability first
    setup_observability(environment, settings['OTEL_ENABLED'])

    app = OpenAPI(
        __name__,
        info=info,
        validation_error_status=422,
        validation_error_callback=validation_error_response
    )
    app.config.update(settings)

    add_observability_middleware(app, instrument=settings['OTEL_ENABLED'] and environment != 'test')

    # Initialize services
    if mongodb_service is None:
        mongodb_service = MongoDBService(
            settings['MONGODB_URI'],
            settings['MONGODB_DATABASE'],
            settings['MONGODB_SERVER_SELECTION_TIMEOUT_MS']
        )
        _connect_store(mongodb_service, environment)
        atexit.register(mongodb_service.close_connection)

    if redis_service is None:
        redis_service = RedisService(
            settings['REDIS_URL'],
            required=environment == 'production' and bool(settings['REDIS_URL'])
        )
        atexit.register(redis_service.close)

    auth_service = AuthService(
        settings['JWT_ACCESS_SECRET'],
        settings['ADMIN_JWT_SECRET'] or None,
        settings['ADMIN_TOKEN_EXPIRES_MINUTES'],
        refresh_secret=settings['ADMIN_REFRESH_JWT_SECRET'] or None,
        refresh_token_expire_days=settings['ADMIN_REFRESH_EXPIRES_DAYS']
    )
    department_registry = DepartmentRegistry(mongodb_service, redis_service, settings['CACHE_TTL_SECONDS'])
    issue_workflow = IssueWorkflow(mongodb_service, settings['STRICT_STATUS_TRANSITIONS'])
    admin_directory = AdminDirectory(mongodb_service, auth_service)
    user_directory = UserDirectory(mongodb_service)
    auth_middleware = AuthMiddleware(auth_service, admin_directory, user_directory, department_registry)

    # Error handling
    ErrorHandlerMiddleware(app)
    register_custom_error_handlers(app)

    # Make services available to routes
    app.mongodb_service = mongodb_service
    app.redis_service = redis_service
    app.auth_service = auth_service
    app.department_registry = department_registry
    app.issue_workflow = issue_workflow
    app.admin_directory = admin_directory
    app.user_directory = user_directory
    app.auth_middleware = auth_middleware

    # Register routes
    from routes.departments import departments_bp
    from routes.admin_auth import admin_auth_bp

    app.register_api(departments_bp)
    app.register_api(admin_auth_bp)

    @app.get('/api/healthz', tags=[health_tag])
    def health_check():
        """Dependency health check."""
        mongodb = app.mongodb_service.health_check()
        redis = app.redis_service.health_check()

        healthy = mongodb.get('status') == 'healthy'
        body = {
            "status": "healthy" if healthy else "unhealthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "environment": app.config['ENVIRONMENT'],
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "dependencies": {
                "mongodb": mongodb,
                "redis": redis
            }
        }
        return jsonify(body), 200 if healthy else 503

    logger.info("Application created", extra={"environment": environment})
    return app


if __name__ == '__main__':
    # Development server
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
