"""Database models for the review engine."""
from sqlalchemy import Column, Integer, LargeBinary, String

from wordreview.models.base import Base, TimestampMixin


class StoredDocument(Base, TimestampMixin):
    """A serialized document kept under a logical key.

    The engine stores whole collections (learning records, the wrong-word
    set, review sessions) as one document each.
    """

    __tablename__ = "stored_documents"

    id = Column(Integer, primary_key=True)
    key = Column(String, unique=True, nullable=False, index=True)
    payload = Column(LargeBinary, nullable=False)
    size = Column(Integer, default=0)
