import contextlib
import logging

from database.database import SessionLocal, get_engine
from database.repository import MatchingRepository

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def matching_uow():
    """Transaction scope for one step of the matching run.

    Yields a MatchingRepository (students, scholarships, matches,
    notifications) bound to a fresh Session. Commits on success, rolls back
    on exception, always closes. Each upsert, notified flag and tracker record
    is its own unit so a failure never undoes work committed before it.

    Usage:
        with matching_uow() as repo:
            outcome = repo.matches.upsert_match(...)
    """
    get_engine()
    session = SessionLocal()
    try:
        repo = MatchingRepository(session)
        yield repo
        session.commit()
    except Exception as e:
        logger.warning(f"Rolling back matching unit of work: {e!r}")
        session.rollback()
        raise
    finally:
        session.close()
