"""
Centralized logging configuration with file handlers and component separation.

Logs are written to <log_dir>/all.log (JSON, rotating) and kept in an
in-memory ring buffer per component so a UI can show recent activity.
"""
import json
import logging
from collections import deque
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional

# In-memory log buffer size (last N entries per component)
LOG_BUFFER_SIZE = 500

# Component mapping for categorization
LOG_MODULES = {
    "auth": ["cinematheque.services.session_guard", "cinematheque.services.token_store"],
    "store": ["cinematheque.services.media_store", "cinematheque.services.api_client"],
    "import": ["cinematheque.services.import_merge", "cinematheque.services.edit_session"],
    "view": ["cinematheque.services.view_pipeline", "cinematheque.services.export"],
    "notifications": ["cinematheque.services.notifications"],
}


def _get_module_category(logger_name: str) -> str:
    """Map logger name to component category."""
    for module, prefixes in LOG_MODULES.items():
        for prefix in prefixes:
            if logger_name.startswith(prefix):
                return module
    return "other"


def _record_to_entry(record: logging.LogRecord) -> Dict:
    return {
        "timestamp": datetime.fromtimestamp(record.created).isoformat(),
        "level": record.levelname,
        "logger": record.name,
        "module": _get_module_category(record.name),
        "message": record.getMessage(),
        "filename": record.filename,
        "lineno": record.lineno
    }


class JsonFormatter(logging.Formatter):
    """Format log records as JSON for easy parsing."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = _record_to_entry(record)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


class InMemoryLogHandler(logging.Handler):
    """Handler that keeps recent logs in memory, grouped by component."""

    _buffers: Dict[str, deque] = {}
    _all_buffer: deque = deque(maxlen=LOG_BUFFER_SIZE * 2)

    def __init__(self):
        super().__init__()
        for module in list(LOG_MODULES.keys()) + ["other"]:
            if module not in InMemoryLogHandler._buffers:
                InMemoryLogHandler._buffers[module] = deque(maxlen=LOG_BUFFER_SIZE)

    def emit(self, record: logging.LogRecord):
        try:
            log_entry = _record_to_entry(record)
            if record.exc_info:
                log_entry["exception"] = self.format(record)

            module = log_entry["module"]
            if module in InMemoryLogHandler._buffers:
                InMemoryLogHandler._buffers[module].append(log_entry)
            InMemoryLogHandler._all_buffer.append(log_entry)
        except Exception:
            self.handleError(record)

    @classmethod
    def get_logs(
        cls,
        module: str = "all",
        level: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Dict:
        """Get logs from memory buffer with filtering, newest first."""
        if module == "all":
            logs = list(cls._all_buffer)
        elif module in cls._buffers:
            logs = list(cls._buffers[module])
        else:
            logs = []

        logs = logs[::-1]

        if level:
            logs = [entry for entry in logs if entry["level"] == level.upper()]

        if search:
            search_lower = search.lower()
            logs = [entry for entry in logs if search_lower in entry["message"].lower()]

        total = len(logs)
        logs = logs[offset:offset + limit]

        return {
            "logs": logs,
            "total": total,
            "offset": offset,
            "limit": limit,
            "module": module
        }

    @classmethod
    def get_stats(cls) -> Dict:
        """Get log statistics per component."""
        stats = {}
        for module, buffer in cls._buffers.items():
            logs = list(buffer)
            stats[module] = {
                "total": len(logs),
                "errors": sum(1 for entry in logs if entry["level"] == "ERROR"),
                "warnings": sum(1 for entry in logs if entry["level"] == "WARNING")
            }
        stats["all"] = {
            "total": len(cls._all_buffer),
            "errors": sum(1 for entry in cls._all_buffer if entry["level"] == "ERROR"),
            "warnings": sum(1 for entry in cls._all_buffer if entry["level"] == "WARNING")
        }
        return stats

    @classmethod
    def clear(cls):
        """Drop every buffered entry."""
        for buffer in cls._buffers.values():
            buffer.clear()
        cls._all_buffer.clear()


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None):
    """
    Configure logging with:
    - Console output
    - File output (JSON format, rotating) when a log directory is given
    - In-memory buffer for the UI
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        all_file_handler = RotatingFileHandler(
            log_dir / "all.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=7,
            encoding="utf-8"
        )
        all_file_handler.setLevel(log_level)
        all_file_handler.setFormatter(JsonFormatter())
        root_logger.addHandler(all_file_handler)

    memory_handler = InMemoryLogHandler()
    memory_handler.setLevel(log_level)
    root_logger.addHandler(memory_handler)

    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.info("Logging system initialized")


def get_available_modules() -> List[str]:
    """Get list of available log components."""
    return ["all"] + list(LOG_MODULES.keys()) + ["other"]
