"""
Database configuration and session management for the Inventory service.

This module sets up the database connection using SQLAlchemy and provides
a session factory for the document store. Documents are kept in a JSON
column; timestamps inside a document are written as tagged values so they
come back as ``datetime`` objects, the store's native temporal type.
"""
import json
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

from .config import DATABASE_URL

TIMESTAMP_TAG = "$timestamp"

Base = declarative_base()


def _encode_value(value):
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {TIMESTAMP_TAG: value.astimezone(timezone.utc).isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_object(obj: dict):
    if len(obj) == 1 and TIMESTAMP_TAG in obj:
        return datetime.fromisoformat(obj[TIMESTAMP_TAG])
    return obj


def json_serializer(value) -> str:
    """Serialize a document, encoding datetimes as tagged timestamps."""
    return json.dumps(value, default=_encode_value)


def json_deserializer(raw: str):
    """Deserialize a document, reviving tagged timestamps as aware datetimes."""
    return json.loads(raw, object_hook=_decode_object)


def build_engine(url: str = DATABASE_URL):
    """
    Create a SQLAlchemy engine wired with the document JSON codec.

    Args:
        url: Database URL

    Returns:
        Engine: SQLAlchemy engine
    """
    connect_args = {}
    if url.startswith("sqlite"):
        # Store calls run in worker threads
        connect_args["check_same_thread"] = False
    return create_engine(
        url,
        connect_args=connect_args,
        json_serializer=json_serializer,
        json_deserializer=json_deserializer,
    )


def build_session_factory(engine):
    """Return a session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

