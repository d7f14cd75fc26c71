"""SQLAlchemy database models for Draftsmith."""
import datetime
from typing import Optional

from sqlalchemy import (Column, DateTime, ForeignKey, Integer, String, Table,
                        Text, create_engine, event)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from draftsmith.config import config

# Create base class for SQLAlchemy models
Base = declarative_base()

# Association table for tags and notes
note_tags = Table(
    "note_tags",
    Base.metadata,
    Column("note_id", Integer, ForeignKey("notes.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id"), primary_key=True),
)


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)
    modified_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title}')>"


class DBTag(Base):
    """Database model for a tag."""
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}')>"


class DBNoteHierarchy(Base):
    """Parent/child edge between two notes.

    ``child_note_id`` is unique: a note has at most one parent.
    """
    __tablename__ = "note_hierarchy"
    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_note_id = Column(Integer, ForeignKey("notes.id"), nullable=False, index=True)
    child_note_id = Column(Integer, ForeignKey("notes.id"), nullable=False, unique=True)
    hierarchy_type = Column(String(50), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<NoteHierarchy(id={self.id}, parent={self.parent_note_id}, "
            f"child={self.child_note_id}, type='{self.hierarchy_type}')>"
        )


class DBTagHierarchy(Base):
    """Parent/child edge between two tags.

    ``child_tag_id`` is unique: a tag has at most one parent.
    """
    __tablename__ = "tag_hierarchy"
    id = Column(Integer, primary_key=True, autoincrement=True)
    parent_tag_id = Column(Integer, ForeignKey("tags.id"), nullable=False, index=True)
    child_tag_id = Column(Integer, ForeignKey("tags.id"), nullable=False, unique=True)

    def __repr__(self) -> str:
        return (
            f"<TagHierarchy(id={self.id}, parent={self.parent_tag_id}, "
            f"child={self.child_tag_id})>"
        )


class DBTask(Base):
    """Database model for a task attached to a note."""
    __tablename__ = "tasks"
    id = Column(Integer, primary_key=True, autoincrement=True)
    note_id = Column(Integer, ForeignKey("notes.id"), nullable=False, index=True)
    status = Column(String(50), nullable=False, default="todo")
    created_at = Column(DateTime, default=datetime.datetime.now, nullable=False)

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, note_id={self.note_id}, status='{self.status}')>"


def create_db_engine(url: Optional[str] = None) -> Engine:
    """Create an engine for the configured database.

    In-memory SQLite uses a single shared connection so every session sees
    the same database. File-backed SQLite gets WAL mode on each connection.
    """
    url = url or config.get_db_url()
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if not url.startswith("sqlite"):
        # Hierarchy edits read all edges and then write; SERIALIZABLE keeps
        # two concurrent edits from jointly introducing a cycle.
        return create_engine(url, pool_pre_ping=True, isolation_level="SERIALIZABLE")

    engine = create_engine(url, pool_pre_ping=True)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        # Take over transaction control from pysqlite (see do_begin)
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        # WAL mode: writes go to separate journal, preventing corruption on crash
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        # Acquire the write lock up front so read-check-write is atomic
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def init_db(engine: Optional[Engine] = None) -> Engine:
    """Create all tables (idempotent) and return the engine."""
    engine = engine or create_db_engine()
    Base.metadata.create_all(engine)
    return engine


def drop_db(engine: Optional[Engine] = None) -> None:
    """Drop every Draftsmith table and its contents."""
    engine = engine or create_db_engine()
    Base.metadata.drop_all(engine)


def get_session_factory(engine: Optional[Engine] = None):
    """Get a session factory for the database."""
    if engine is None:
        engine = create_db_engine()
    return sessionmaker(bind=engine)
