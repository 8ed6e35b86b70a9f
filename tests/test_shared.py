import logging
from unittest.mock import patch

import pytest

# Import modules to test
from shared.config import Settings, settings
from shared.logging import setup_logging
from shared.metrics import setup_metrics
from shared.tracing import setup_tracing

from pgcrtauth.metrics import CrtAuthMetrics


@pytest.fixture
def restore_root_logger():
    """Undo handler and level changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_settings_defaults(monkeypatch):
    """Test the defaults used when no environment is set."""
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("DEFAULT_KEY_SIZE", raising=False)

    config = Settings(_env_file=None)

    assert config.APP_NAME == "pgcrtauth"
    assert config.LOG_LEVEL == "WARNING"
    assert config.TELEMETRY_CONSOLE is False
    assert config.DEFAULT_KEY_SIZE == "P256"
    assert config.DEFAULT_VALID_FOR_DAYS == 365


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("DEFAULT_KEY_SIZE", "2048")
    monkeypatch.setenv("TELEMETRY_CONSOLE", "true")

    config = Settings(_env_file=None)

    assert config.DEFAULT_KEY_SIZE == "2048"
    assert config.TELEMETRY_CONSOLE is True


def test_setup_logging(restore_root_logger):
    """Test that setup_logging configures OTel provider without exporters by default."""
    with patch("shared.logging.set_logger_provider") as mock_set_provider, \
         patch("shared.logging.LoggerProvider") as mock_provider_cls, \
         patch("shared.logging.LoggingHandler") as mock_handler_cls, \
         patch("shared.logging.BatchLogRecordProcessor") as mock_processor_cls:

        setup_logging()

        mock_provider_cls.assert_called_once()
        mock_set_provider.assert_called_once_with(mock_provider_cls.return_value)
        mock_processor_cls.assert_not_called()
        assert mock_handler_cls.return_value in restore_root_logger.handlers
        assert restore_root_logger.level == logging.WARNING


def test_setup_logging_console_telemetry(monkeypatch, restore_root_logger):
    monkeypatch.setattr(settings, "TELEMETRY_CONSOLE", True)

    with patch("shared.logging.set_logger_provider"), \
         patch("shared.logging.LoggerProvider") as mock_provider_cls, \
         patch("shared.logging.LoggingHandler"), \
         patch("shared.logging.BatchLogRecordProcessor") as mock_processor_cls, \
         patch("shared.logging.ConsoleLogRecordExporter"):

        setup_logging()

        mock_processor_cls.assert_called_once()
        mock_provider_cls.return_value.add_log_record_processor.assert_called_once_with(
            mock_processor_cls.return_value
        )


def test_setup_metrics():
    """Test that setup_metrics configures and returns the OTel meter provider."""
    with patch("shared.metrics.MeterProvider") as mock_provider_cls, \
         patch("shared.metrics.metrics.set_meter_provider") as mock_set_provider, \
         patch("shared.metrics.PeriodicExportingMetricReader") as mock_reader_cls:

        provider = setup_metrics("test-app")

        assert provider is mock_provider_cls.return_value
        mock_set_provider.assert_called_once_with(provider)
        mock_reader_cls.assert_not_called()
        assert mock_provider_cls.call_args.kwargs["metric_readers"] == []


def test_setup_metrics_console_telemetry(monkeypatch):
    monkeypatch.setattr(settings, "TELEMETRY_CONSOLE", True)

    with patch("shared.metrics.MeterProvider") as mock_provider_cls, \
         patch("shared.metrics.metrics.set_meter_provider"), \
         patch("shared.metrics.PeriodicExportingMetricReader") as mock_reader_cls, \
         patch("shared.metrics.ConsoleMetricExporter"):

        setup_metrics("test-app")

        readers = mock_provider_cls.call_args.kwargs["metric_readers"]
        assert readers == [mock_reader_cls.return_value]


def test_setup_tracing(monkeypatch):
    """Test that setup_tracing installs a provider carrying the service name."""
    monkeypatch.setattr(settings, "TELEMETRY_CONSOLE", True)

    with patch("shared.tracing.TracerProvider") as mock_provider_cls, \
         patch("shared.tracing.trace.set_tracer_provider") as mock_set_provider, \
         patch("shared.tracing.SimpleSpanProcessor") as mock_processor_cls, \
         patch("shared.tracing.ConsoleSpanExporter"):

        setup_tracing("test-app")

        resource = mock_provider_cls.call_args.kwargs["resource"]
        assert resource.attributes["service.name"] == "test-app"
        mock_provider_cls.return_value.add_span_processor.assert_called_once_with(
            mock_processor_cls.return_value
        )
        mock_set_provider.assert_called_once_with(mock_provider_cls.return_value)


def test_metrics_facade_labels():
    """Test that the metrics facade records with the expected labels."""
    with patch("pgcrtauth.metrics.keys_generated_total") as mock_keys, \
         patch("pgcrtauth.metrics.key_generation_duration") as mock_duration, \
         patch("pgcrtauth.metrics.certificates_signed_total") as mock_signed:

        facade = CrtAuthMetrics()
        facade.record_key_generated("RSA-2048", 0.5)
        facade.record_certificate_signed("parent")

        mock_keys.add.assert_called_once_with(1, {"algorithm": "RSA-2048"})
        mock_duration.record.assert_called_once_with(0.5, {"algorithm": "RSA-2048"})
        mock_signed.add.assert_called_once_with(1, {"mode": "parent"})


def test_logging_module_has_no_module_logger():
    """Test that modules log through their own getLogger(__name__) loggers."""
    import shared.logging as shared_logging

    assert not hasattr(shared_logging, "logger")
