import logging

from tenacity import retry, stop_after_attempt, wait_fixed

from database.database import get_engine
from database.models import Base

logger = logging.getLogger(__name__)


@retry(stop=stop_after_attempt(5), wait=wait_fixed(2))
def init_db():
    """Create the student, scholarship, match and notification tables if missing."""
    engine = get_engine()
    logger.info(f"Initializing schema on {engine.url.render_as_string(hide_password=True)}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Error initializing DB: {e}")
        raise
    logger.info(f"Schema ready: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
