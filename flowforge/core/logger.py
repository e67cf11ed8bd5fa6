"""Logging setup for FlowForge.

Modules log through ``logging.getLogger(__name__)``; this module configures
the ``flowforge`` parent logger once. ``LOG_LEVEL`` selects the level and
``LOG_JSON=true`` switches to one JSON object per line.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from contextvars import ContextVar
from datetime import UTC, datetime

LOG_FORMAT = '%(asctime)s - %(name)s:%(levelname)s: [user %(user_id)s] %(message)s'

# Caller id of the request being served, set by the transport layer.
user_id_var: ContextVar[str] = ContextVar('user_id', default='')

_STANDARD_ATTRS = frozenset(
    logging.LogRecord('', 0, '', 0, '', (), None).__dict__.keys()
) | {'message', 'asctime', 'user_id'}


def set_user_id(user_id: object) -> None:
    user_id_var.set('' if user_id is None else str(user_id))


class UserContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = user_id_var.get() or '-'
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            'timestamp': datetime.fromtimestamp(record.created, UTC).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        user_id = getattr(record, 'user_id', '-')
        if user_id != '-':
            data['user_id'] = user_id
        if record.exc_info and record.exc_info[0] is not None:
            data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info),
            }
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith('_'):
                data[key] = value
        return json.dumps(data, default=str)


def _env_flag(name: str) -> bool:
    return os.getenv(name, '').strip().lower() in ('1', 'true', 'yes')


def setup_logging(
    level: str | None = None, json_output: bool | None = None
) -> logging.Logger:
    """Configure the ``flowforge`` logger. Calling it again replaces the handler."""
    level = (level or os.getenv('LOG_LEVEL') or 'INFO').upper()
    if json_output is None:
        json_output = _env_flag('LOG_JSON')

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(UserContextFilter())
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    flowforge_logger.handlers.clear()
    flowforge_logger.addHandler(handler)
    flowforge_logger.setLevel(level)
    return flowforge_logger


flowforge_logger = logging.getLogger('flowforge')
