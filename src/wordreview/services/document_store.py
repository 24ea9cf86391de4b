"""Durable key/document storage backed by the database."""
import logging
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from wordreview.exceptions import PersistenceError
from wordreview.models.base import SessionLocal
from wordreview.models.models import StoredDocument

logger = logging.getLogger(__name__)


class DocumentStore:
    """Store serialized documents under logical keys.

    Each call opens its own session, so the store can be used from the
    persistence worker thread as well as the caller's thread.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """Initialize the store with a session factory."""
        self.session_factory = session_factory or SessionLocal

    def get(self, key: str) -> Optional[bytes]:
        """Return the stored payload, or None if the key was never written."""
        db = self.session_factory()
        try:
            document = db.query(StoredDocument).filter(StoredDocument.key == key).first()
            return bytes(document.payload) if document else None
        except SQLAlchemyError as e:
            raise PersistenceError(key, f"read failed: {e}") from e
        finally:
            db.close()

    def set(self, key: str, payload: bytes) -> None:
        """Insert or replace the payload stored under key."""
        db = self.session_factory()
        try:
            document = db.query(StoredDocument).filter(StoredDocument.key == key).first()
            if document is None:
                document = StoredDocument(key=key, payload=payload, size=len(payload))
                db.add(document)
            else:
                document.payload = payload
                document.size = len(payload)
                document.updated_at = datetime.now(UTC)
            db.commit()
            logger.debug("Stored document %s (%d bytes)", key, len(payload))
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(key, f"write failed: {e}") from e
        finally:
            db.close()

    def delete(self, key: str) -> bool:
        """Remove the document; returns False if it did not exist."""
        db = self.session_factory()
        try:
            deleted = db.query(StoredDocument).filter(StoredDocument.key == key).delete()
            db.commit()
            return deleted > 0
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(key, f"delete failed: {e}") from e
        finally:
            db.close()
