from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from charging_simulator.config.models import FileType

logger = logging.getLogger(__name__)


class ReloadCallbackError(RuntimeError):
    """Raised when the configuration change callback fails."""


def handle_file_exception(
    file: Union[str, Path],
    file_type: FileType,
    error: BaseException,
    log_prefix: str = "",
) -> None:
    """
    Log a classified warning for a failed configuration file operation.

    The error is reported, never raised: callers continue with whatever state they had,
    which for the configuration document means built-in defaults.
    """
    prefix = f"{log_prefix} " if log_prefix.strip() else ""
    if isinstance(error, FileNotFoundError):
        log_msg = f"{file_type.value} file {file} not found:"
    elif isinstance(error, FileExistsError):
        log_msg = f"{file_type.value} file {file} already exists:"
    elif isinstance(error, PermissionError):
        log_msg = f"{file_type.value} file {file} access denied:"
    else:
        log_msg = f"{file_type.value} file {file} error:"
    logger.warning("%s%s %s", prefix, log_msg, error)
