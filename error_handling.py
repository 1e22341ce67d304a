# error_handling.py
"""
Error taxonomy and logging setup for the safety report system
"""

import logging
import logging.handlers
import os
import sys
import traceback
from datetime import datetime
from functools import wraps
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# Firebase Auth reports throttling under both the SDK code and the REST message
RATE_LIMIT_CODES = {'auth/too-many-requests', 'TOO_MANY_ATTEMPTS_TRY_LATER'}

PERMISSION_DENIED = 'permission-denied'

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class SafetyAppError(Exception):
    """Base error for the safety report system"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or 'unknown'


class ConfigInvalidError(SafetyAppError):
    """Missing or placeholder Firebase credentials; fatal to startup"""

    def __init__(self, message: str):
        super().__init__(message, code='config-invalid')


class AuthError(SafetyAppError):
    """Identity provider failure"""

    RATE_LIMITED = 'rate-limited'
    OTHER = 'other'

    @property
    def kind(self) -> str:
        return self.RATE_LIMITED if self.code in RATE_LIMIT_CODES else self.OTHER

    @property
    def is_rate_limited(self) -> bool:
        return self.kind == self.RATE_LIMITED


class StoreError(SafetyAppError):
    """Document store failure"""

    @property
    def permission_denied(self) -> bool:
        return self.code == PERMISSION_DENIED


def log_errors(context: str = None):
    """Decorator that logs failures with context and re-raises them unchanged"""
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except SafetyAppError as e:
                logger.error(f"{context or func.__name__} failed [{e.code}]: {e.message}")
                logger.debug(f"Full traceback: {traceback.format_exc()}")
                raise
            except Exception as e:
                logger.error(f"Unexpected error in {context or func.__name__}: {str(e)}")
                logger.debug(f"Full traceback: {traceback.format_exc()}")
                raise
        return wrapper
    return decorator


def configure_logging(level: str = 'INFO', log_format: str = LOG_FORMAT,
                      file_path: Optional[str] = None, max_file_size_mb: int = 10,
                      backup_count: int = 5):
    """Configure root logging once: console plus optional rotating file"""
    root = logging.getLogger()
    if getattr(root, '_safety_app_configured', False):
        return root

    formatter = logging.Formatter(log_format)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if file_path:
        try:
            directory = os.path.dirname(file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                file_path,
                maxBytes=int(max_file_size_mb * 1024 * 1024),
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Could not open log file {file_path}: {e}")

    root._safety_app_configured = True
    return root


def create_error_report(error: Exception, context: str = "") -> Dict[str, Any]:
    """Create error report for the connection debug panel"""
    return {
        'error_type': type(error).__name__,
        'error_code': getattr(error, 'code', None),
        'error_message': str(error),
        'context': context,
        'timestamp': str(datetime.now()),
        'traceback': traceback.format_exc(),
        'python_version': sys.version
    }


__all__ = [
    'SafetyAppError',
    'ConfigInvalidError',
    'AuthError',
    'StoreError',
    'RATE_LIMIT_CODES',
    'PERMISSION_DENIED',
    'log_errors',
    'configure_logging',
    'create_error_report'
]
