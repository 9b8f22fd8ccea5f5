"""System routes for recent logs and health."""

import logging
from collections import deque
from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter()

LOG_BUFFER: deque = deque(maxlen=200)

_RECORD_FIELDS = {
    "args", "asctime", "created", "exc_info", "exc_text", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs", "message", "msg", "name",
    "pathname", "process", "processName", "relativeCreated", "stack_info", "thread",
    "threadName", "taskName",
}


class LogEntry(BaseModel):
    timestamp: str
    level: str
    logger: str
    message: str
    extra: Dict[str, Any]


class MemoryLogHandler(logging.Handler):
    """Keep recent records, including their ``extra`` fields, in memory."""

    def emit(self, record):
        try:
            entry = {
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": self.format(record),
                "extra": {
                    k: v if isinstance(v, (str, int, float, bool)) or v is None else str(v)
                    for k, v in record.__dict__.items()
                    if k not in _RECORD_FIELDS
                },
            }
            LOG_BUFFER.append(entry)
        except Exception:
            self.handleError(record)


memory_handler = MemoryLogHandler()
memory_handler.setFormatter(logging.Formatter("%(message)s"))


def install_log_buffer(level: int = logging.INFO) -> None:
    """Attach the in-memory handler to the ``taskboard`` logger once."""
    package_logger = logging.getLogger("taskboard")
    if memory_handler not in package_logger.handlers:
        package_logger.addHandler(memory_handler)
    if package_logger.level == logging.NOTSET or package_logger.level > level:
        package_logger.setLevel(level)


@router.get("/api/system/logs", response_model=List[LogEntry])
async def get_logs():
    """Retrieve recent log records."""
    return list(LOG_BUFFER)


@router.get("/health")
async def health():
    return {"status": "healthy"}
