"""Logging estruturado em JSON (python-json-logger) com correlation_id."""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from pos_handoff.observability.middleware import get_correlation_id

JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s %(service)s"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Anexa `service` e o correlation_id corrente a cada record.

    Um correlation_id passado via `extra` tem precedência. Nunca colocar
    session_token, chave AES ou payload decifrado em `extra`.
    """

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id()
        record.service = self.service_name
        return True


def _formatter(log_format: str) -> logging.Formatter:
    if log_format == "text":
        return logging.Formatter(TEXT_FORMAT)
    return JsonFormatter(JSON_FIELDS, rename_fields={"levelname": "level", "name": "logger"})


def configure_logging(level: str, service_name: str, log_format: str = "json") -> None:
    """Substitui os handlers do root logger por um único stream handler.

    `log_format="text"` serve apenas para leitura local.
    """
    stream = logging.StreamHandler()
    stream.setLevel(level)
    stream.setFormatter(_formatter(log_format))
    stream.addFilter(CorrelationIdFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [stream]


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
