import logging
import os

# --- OTel & Observability Imports ---
from opentelemetry import trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

# --- Prometheus Import ---
from prometheus_client import start_http_server

from lms_trivia.config import GameConfig

SERVICE_NAME = "lms-trivia-engine"

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Console logging for local runs."""
    level = logging.getLevelName(GameConfig.LOG_LEVEL.upper())
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )


def configure_observability(metrics_port: int | None = None) -> bool:
    """
    Sends traces and logs over OTLP when the OTEL env vars are set and
    exposes Prometheus metrics on `metrics_port` (0 or None: disabled).
    Returns True when the OTLP exporters were installed.
    """
    port = GameConfig.METRICS_PORT if metrics_port is None else metrics_port
    if port:
        try:
            start_http_server(port)
            logger.info(f"Prometheus metrics server started on port {port}")
        except OSError:
            logger.warning(f"Prometheus port {port} already in use. Skipping.")

    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    headers = os.getenv("OTEL_EXPORTER_OTLP_HEADERS")
    if not endpoint or not headers:
        logger.warning("OTEL env vars not set. Telemetry stays local.")
        return False

    resource = Resource.create({"service.name": SERVICE_NAME})

    # --- A. TRACING ---
    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, headers=headers))
    )
    trace.set_tracer_provider(trace_provider)

    # --- B. LOGGING ---
    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(OTLPLogExporter(endpoint=endpoint, headers=headers))
    )
    set_logger_provider(logger_provider)

    handler = LoggingHandler(level=logging.INFO, logger_provider=logger_provider)
    logging.getLogger().addHandler(handler)
    return True
