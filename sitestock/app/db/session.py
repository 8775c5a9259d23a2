from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from sitestock.app.core.config import settings
from sitestock.app.core.errors import Conflict

logger = logging.getLogger(__name__)

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True, echo=settings.DB_ECHO)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


# SQLSTATE Postgres : sérialisation, deadlock, verrou indisponible (NOWAIT / lock_timeout)
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


def is_lock_conflict(exc: OperationalError) -> bool:
    return getattr(exc.orig, "sqlstate", None) in RETRYABLE_SQLSTATES


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Une transaction par invocation de workflow.

    - commit si le bloc se termine normalement
    - rollback sur n'importe quelle exception (aucune ligne partiellement appliquée)
    - IntegrityError / conflit de verrou ou de sérialisation -> Conflict
    - toute autre OperationalError (base injoignable, ...) est propagée -> 500
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity error, transaction rolled back: %s", exc.orig)
        raise Conflict("Concurrent or duplicate modification, please retry") from exc
    except OperationalError as exc:
        db.rollback()
        if not is_lock_conflict(exc):
            logger.error("Database error, transaction rolled back: %s", exc.orig)
            raise
        logger.warning("Lock conflict, transaction rolled back: %s", exc.orig)
        raise Conflict("Row is locked or was modified concurrently, please retry") from exc
    except Exception:
        db.rollback()
        raise
