"""
Единая настройка логирования для HTTP API и Telegram бота.

Консоль получает короткий формат, файл logs/app.log - полный, с ротацией.
Шумные библиотеки (sqlalchemy, httpx) пишутся только в файл.
"""

from __future__ import annotations

import logging
import logging.config
import time
from pathlib import Path
from typing import Optional

from panelbridge.core.config import settings

LOG_FILE_NAME = "app.log"
MAX_TOTAL_SIZE = 100 * 1024 * 1024  # 100 МБ
MAX_FILE_AGE_DAYS = 30

# logger -> (handlers, уровень; None = общий уровень)
_LIBRARY_LOGGERS = {
    "uvicorn": (["console", "file"], None),
    "uvicorn.error": (["console", "file"], None),
    "uvicorn.access": (["console", "file"], None),
    "aiogram": (["console", "file"], None),
    "sqlalchemy.engine": (["file"], "WARNING"),
    "httpx": (["file"], "WARNING"),
}


class SuppressWatchFilesFilter(logging.Filter):
    """Убирает сообщения hot-reload вида «1 change detected»."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return "change detected" not in record.getMessage().lower()


def build_logging_config(level: str, log_file: Path) -> dict:
    level = level.upper()
    loggers = {
        name: {"handlers": handlers, "level": own_level or level, "propagate": False}
        for name, (handlers, own_level) in _LIBRARY_LOGGERS.items()
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "suppress_watchfiles": {"()": SuppressWatchFilesFilter},
        },
        "formatters": {
            "standard": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "short": {"format": "%(levelname)s: %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "short",
                "filters": ["suppress_watchfiles"],
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "DEBUG",
                "formatter": "standard",
                "filename": str(log_file),
                "maxBytes": 5 * 1024 * 1024,  # 5 МБ на файл
                "backupCount": 20,
                "encoding": "utf-8",
                "delay": True,
                "filters": ["suppress_watchfiles"],
            },
        },
        "root": {"handlers": ["console", "file"], "level": level},
        "loggers": loggers,
    }


def setup_logging(level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    log_dir = Path(log_dir or settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(level, log_dir / LOG_FILE_NAME))
    cleanup_logs(log_dir)


def cleanup_logs(
    log_dir: Path,
    max_age_days: int = MAX_FILE_AGE_DAYS,
    max_total_size: int = MAX_TOTAL_SIZE,
) -> int:
    """
    Удаляет файлы логов старше max_age_days и самые старые файлы сверх
    max_total_size. Возвращает число удалённых файлов.
    """
    now = time.time()
    files = []
    for path in Path(log_dir).glob(f"{LOG_FILE_NAME}*"):
        try:
            files.append((path, path.stat()))
        except FileNotFoundError:
            continue
    files.sort(key=lambda item: item[1].st_mtime, reverse=True)

    removed = 0
    total_size = 0
    for path, stat in files:
        too_old = now - stat.st_mtime > max_age_days * 24 * 60 * 60
        total_size += 0 if too_old else stat.st_size
        if too_old or total_size > max_total_size:
            path.unlink(missing_ok=True)
            removed += 1
    return removed
