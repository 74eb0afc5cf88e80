"""
OpenTelemetry Configuration

Sets up distributed tracing and structured logging for the civic issues API.
"""

import os
import logging
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

SERVICE_NAME = 'civic-issues-api'

_configured = False


def setup_observability(environment: str = None, otel_enabled: bool = None) -> bool:
    """
    Initialize logging and OpenTelemetry tracing based on environment configuration.

    Returns:
        True if a tracer provider was installed
    """
    global _configured

    environment = environment or os.getenv('ENVIRONMENT', 'development')
    if otel_enabled is None:
        otel_enabled = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'
    service_version = os.getenv('SERVICE_VERSION', '1.0.0')

    setup_structured_logging(environment)

    # The global tracer provider can only be set once per process
    if not otel_enabled or environment == 'test' or _configured:
        return False

    # Environment-specific sampling
    if environment == 'production':
        sampler = TraceIdRatioBased(0.1)  # 10% sampling in production
    elif environment == 'staging':
        sampler = TraceIdRatioBased(0.5)  # 50% sampling in staging
    else:
        sampler = TraceIdRatioBased(1.0)  # 100% sampling in development

    resource = Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": service_version,
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(
        sampler=sampler,
        resource=resource
    )

    otlp_endpoint = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    if otlp_endpoint:
        headers = None
        if os.getenv('OTEL_API_KEY'):
            headers = {"Authorization": f"Bearer {os.getenv('OTEL_API_KEY')}"}
        tracer_provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=otlp_endpoint, headers=headers),
                max_export_batch_size=512
            )
        )
    elif environment == 'development':
        # Development without a collector: print spans
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(tracer_provider)
    _configured = True
    return True


def setup_structured_logging(environment: str):
    """Configure log levels per environment."""
    log_level = {
        'production': logging.WARNING,
        'staging': logging.INFO,
        'development': logging.INFO,
        'test': logging.WARNING
    }.get(environment, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        handlers=[logging.StreamHandler()]
    )

    if environment == 'production':
        # Production: Reduce noise, focus on errors and business events
        logging.getLogger('pymongo').setLevel(logging.WARNING)
        logging.getLogger('urllib3').setLevel(logging.WARNING)

    elif environment == 'development':
        # Development: Verbose logging for debugging
        logging.getLogger('domain').setLevel(logging.DEBUG)
        logging.getLogger('services').setLevel(logging.DEBUG)
