from contextlib import contextmanager
import logging
from core.imports import datetime

logger = logging.getLogger(__name__)


def rows_to_dicts(result):
    return [dict(row._mapping) for row in result]


def driver_message(exc):
    """Message from the DB driver without the SQL statement SQLAlchemy appends."""
    return str(getattr(exc, "orig", None) or exc)


def to_float(value):
    if value is None:
        return None
    return float(value)


def to_iso(value):
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    # SQLite hands text() results back as plain strings
    try:
        return datetime.fromisoformat(str(value)).isoformat()
    except ValueError:
        return str(value)


def pick(row, *keys, default=None):
    """First non-missing value among ``keys``; procedures and fallbacks name columns differently."""
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return default


@contextmanager
def transaction(engine, label):
    """Yield a connection inside an explicit transaction.

    Commits when the block finishes, rolls back and re-raises on any error so
    none of the block's writes are ever visible on failure.
    """
    with engine.connect() as conn:
        trans = conn.begin()
        try:
            yield conn
        except Exception as e:
            trans.rollback()
            logger.error("%s rolled back: %s", label, driver_message(e))
            raise
        trans.commit()


def to_date_iso(value):
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()[:10]
    return str(value)[:10]
