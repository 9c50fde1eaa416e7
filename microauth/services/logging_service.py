"""
Logging setup for the secure serving application.

Records are written as one JSON object per line. Startup events attach
structured fields through ``extra={'context': {...}}``, which end up under
the ``context`` key.
"""
import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path


# werkzeug's access log writes full request lines, query strings included,
# and the query string may carry the token
ACCESS_LOGGER = 'werkzeug'


class JSONFormatter(logging.Formatter):
    """Formats a record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        context = getattr(record, 'context', None)
        if context:
            entry['context'] = context

        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _rotating_handler(path: Path, max_bytes: int, backup_count: int, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setFormatter(JSONFormatter())
    handler.setLevel(level)
    return handler


class LoggingService:
    """Configures root logging from a ServerConfig."""

    def __init__(self, config):
        self.config = config
        self._handlers = []
        self._setup_logging()
        self.logger = logging.getLogger(__name__)
        self.logger.info("Logging initialized", extra={'context': {
            'log_file': config.log_file_path,
            'level': config.log_level,
        }})

    def _setup_logging(self):
        """Install JSON file, console and errors-only handlers on the root logger."""
        log_path = Path(self.config.log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
        root_logger.setLevel(log_level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        console_handler.setLevel(log_level)

        self._handlers = [
            _rotating_handler(log_path, 10 * 1024 * 1024, 5, log_level),
            console_handler,
            _rotating_handler(log_path.with_suffix('.errors.log'), 5 * 1024 * 1024, 3, logging.ERROR),
        ]
        for handler in self._handlers:
            root_logger.addHandler(handler)

        logging.getLogger(ACCESS_LOGGER).setLevel(logging.WARNING)

    def shutdown(self):
        """Flush, close and detach the handlers installed by this service."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            handler.flush()
            handler.close()
            root_logger.removeHandler(handler)
        self._handlers = []
