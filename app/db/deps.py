from typing import Generator

from sqlalchemy.orm import Session

from app.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Dépendance FastAPI: une session par requête."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
