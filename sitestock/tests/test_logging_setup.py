import logging
import logging.handlers

from sitestock.app.core.config import Settings
from sitestock.app.core.logging_setup import LOG_FILE_NAME, setup_logging


def _file_handlers(logger):
    return [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]


def test_uvicorn_access_log_lands_in_log_file(tmp_path):
    """
    GIVEN
    - LOG_DIR configuré, setup_logging appelé deux fois

    THEN
    - un seul handler fichier, partagé par la racine et les loggers uvicorn
    - une ligne d'accès uvicorn est écrite dans le fichier
    """
    settings = Settings(LOG_DIR=tmp_path, LOG_LEVEL="INFO")
    root = logging.getLogger()
    uvicorn = logging.getLogger("uvicorn")
    access = logging.getLogger("uvicorn.access")

    log_path = setup_logging(settings)
    setup_logging(settings)
    handler = next(h for h in _file_handlers(root) if h.baseFilename == str(log_path))

    try:
        assert log_path == tmp_path / LOG_FILE_NAME
        assert [h for h in _file_handlers(root) if h is handler] == [handler]
        assert handler in uvicorn.handlers
        assert access.handlers.count(handler) == 1
        assert handler not in logging.getLogger("uvicorn.error").handlers

        access.info('127.0.0.1 - "GET /v1/health HTTP/1.1" 200')
        handler.flush()
        assert "GET /v1/health" in log_path.read_text(encoding="utf-8")
    finally:
        for lg in (root, uvicorn, access):
            if handler in lg.handlers:
                lg.removeHandler(handler)
        handler.close()


def test_console_only_without_log_dir():
    assert setup_logging(Settings(LOG_DIR=None)) is None
