from sqlalchemy.orm import Session


class BaseRepository:
    def __init__(self, db: Session):
        self.db = db

    @property
    def dialect_name(self) -> str:
        """SQL dialect of the bound engine ('postgresql' in production, 'sqlite' in tests)."""
        return self.db.get_bind().dialect.name
