import logging
import sys

from opentelemetry._logs import set_logger_provider
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor, ConsoleLogRecordExporter

from .config import settings


def setup_logging() -> None:
    """Configure OpenTelemetry logging for a command line invocation."""

    # 1. Setup OpenTelemetry Logger Provider
    logger_provider = LoggerProvider()

    # Log records only leave the process when console telemetry is requested
    if settings.TELEMETRY_CONSOLE:
        console_exporter = ConsoleLogRecordExporter()
        logger_provider.add_log_record_processor(BatchLogRecordProcessor(console_exporter))

    set_logger_provider(logger_provider)

    # 2. Attach OTel LoggingHandler to Python's root logger
    handler = LoggingHandler(
        level=getattr(logging, settings.LOG_LEVEL), logger_provider=logger_provider
    )

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL)

    # stderr keeps stdout free for command output
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root.addHandler(stream_handler)
