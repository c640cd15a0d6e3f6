"""
SQLAlchemy ORM models for the Inventory service.

Defines the table backing the schemaless document store.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, JSON
from .database import Base

class Document(Base):
    """
    Document model representing one schemaless record in a named collection.

    Attributes:
        seq (int): Primary key, insertion order of the document
        id (str): Opaque document identifier, unique across the table
        collection (str): Name of the collection the document belongs to
        data (dict): Document fields (stored as JSON)
        created_at (datetime): Timestamp when the document was first written
        updated_at (datetime): Timestamp of the last overwrite
    """
    __tablename__ = "documents"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, index=True, nullable=False)
    collection = Column(String, index=True, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
