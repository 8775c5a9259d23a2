from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

from sitestock.app.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
LOG_FILE_NAME = "sitestock.log"


def setup_logging(settings: Settings) -> Path | None:
    """
    Configure le logging racine : console toujours, fichier rotatif si LOG_DIR.

    Retourne le chemin du fichier de log (ou None si console seule).
    Idempotent : un second appel n'ajoute pas de handlers en double.
    """
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    fmt = logging.Formatter(LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(level)

    if not any(getattr(h, "_sitestock", False) for h in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        console._sitestock = True  # type: ignore[attr-defined]
        root.addHandler(console)

    log_path: Path | None = None
    file_handler: logging.Handler | None = None
    if settings.LOG_DIR is not None:
        log_dir = Path(settings.LOG_DIR).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / LOG_FILE_NAME

        file_handler = next((h for h in root.handlers if _is_our_file(h, log_path)), None)
        if file_handler is None:
            file_handler = logging.handlers.RotatingFileHandler(
                log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
            )
            file_handler.setFormatter(fmt)
            root.addHandler(file_handler)

    # uvicorn garde sa console mais ne propage pas : on branche le fichier dessus
    # ("uvicorn.error" remonte dans "uvicorn")
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.setLevel(level)
        if file_handler is not None and name != "uvicorn.error" and file_handler not in lg.handlers:
            lg.addHandler(file_handler)

    return log_path


def _is_our_file(handler: logging.Handler, log_path: Path) -> bool:
    return isinstance(handler, logging.handlers.RotatingFileHandler) and handler.baseFilename == os.path.abspath(log_path)
