"""SQLAlchemy-backed Graph Store."""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Set, Tuple

from sqlalchemy import delete, insert, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from draftsmith.exceptions import ErrorCode, StorageError
from draftsmith.models.db_models import (
    DBNote,
    DBNoteHierarchy,
    DBTag,
    DBTagHierarchy,
    DBTask,
    get_session_factory,
    init_db,
    note_tags,
)
from draftsmith.models.schema import (
    Edge,
    Node,
    NoteRef,
    Partition,
    RelationKind,
    Task,
)
from draftsmith.storage.base import GraphStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _PartitionTables:
    """Where one partition keeps its nodes and edges."""

    node_model: Any
    label_column: Any
    edge_model: Any
    parent_column: Any
    child_column: Any
    kind_column: Optional[Any] = None


_TABLES = {
    Partition.NOTES: _PartitionTables(
        node_model=DBNote,
        label_column=DBNote.title,
        edge_model=DBNoteHierarchy,
        parent_column=DBNoteHierarchy.parent_note_id,
        child_column=DBNoteHierarchy.child_note_id,
        kind_column=DBNoteHierarchy.hierarchy_type,
    ),
    Partition.TAGS: _PartitionTables(
        node_model=DBTag,
        label_column=DBTag.name,
        edge_model=DBTagHierarchy,
        parent_column=DBTagHierarchy.parent_tag_id,
        child_column=DBTagHierarchy.child_tag_id,
    ),
}


class SqlGraphStore(GraphStore):
    """Graph Store over the relational schema in ``db_models``.

    A store created with an engine opens a short session per call. The
    store yielded by ``atomic()`` is bound to one session and leaves
    committing to the surrounding transaction.
    """

    def __init__(self, engine=None, session: Optional[Session] = None):
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine. If None, uses default from config.
            session: Session to bind to. Used internally by ``atomic()``.
        """
        self._session = session
        if session is not None:
            self.engine = session.get_bind()
            self.session_factory = None
        else:
            self.engine = engine or init_db()
            self.session_factory = get_session_factory(self.engine)

    # ========== Session handling ==========

    @contextmanager
    def atomic(self) -> Iterator["SqlGraphStore"]:
        if self._session is not None:
            yield self
            return
        try:
            with self.session_factory() as session:
                with session.begin():
                    yield SqlGraphStore(session=session)
        except SQLAlchemyError as e:
            raise StorageError(
                "Graph store transaction failed",
                operation="transaction",
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

    @contextmanager
    def _use_session(
        self, operation: str, code: ErrorCode, write: bool = False
    ) -> Iterator[Session]:
        """Yield a session, translating database failures into StorageError."""
        try:
            if self._session is not None:
                yield self._session
                if write:
                    self._session.flush()
            else:
                with self.session_factory() as session:
                    yield session
                    if write:
                        session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Graph store {operation} failed: {e}")
            raise StorageError(
                f"Graph store {operation} failed",
                operation=operation,
                code=code,
                original_error=e,
            ) from e

    # ========== Reads ==========

    def list_nodes(self, partition: Partition) -> List[Node]:
        tables = _TABLES[partition]
        with self._use_session("list_nodes", ErrorCode.STORAGE_READ_FAILED) as session:
            rows = session.execute(
                select(tables.node_model.id, tables.label_column).order_by(
                    tables.node_model.id
                )
            ).all()
            return [Node(id=row[0], label=row[1]) for row in rows]

    def list_edges(self, partition: Partition) -> List[Edge]:
        tables = _TABLES[partition]
        with self._use_session("list_edges", ErrorCode.STORAGE_READ_FAILED) as session:
            rows = session.scalars(
                select(tables.edge_model).order_by(tables.edge_model.id)
            ).all()
            return [self._row_to_edge(partition, row) for row in rows]

    def get_edge(self, partition: Partition, child_id: int) -> Optional[Edge]:
        tables = _TABLES[partition]
        with self._use_session("get_edge", ErrorCode.STORAGE_READ_FAILED) as session:
            row = session.scalar(
                select(tables.edge_model).where(tables.child_column == child_id)
            )
            return self._row_to_edge(partition, row) if row is not None else None

    def list_note_tags(self) -> List[Tuple[int, NoteRef]]:
        with self._use_session("list_note_tags", ErrorCode.STORAGE_READ_FAILED) as session:
            rows = session.execute(
                select(note_tags.c.tag_id, DBNote.id, DBNote.title)
                .select_from(note_tags)
                .join(DBNote, note_tags.c.note_id == DBNote.id)
                .order_by(DBNote.title, DBNote.id)
            ).all()
            return [(row[0], NoteRef(id=row[1], title=row[2])) for row in rows]

    def list_task_note_ids(self) -> Set[int]:
        with self._use_session("list_task_note_ids", ErrorCode.STORAGE_READ_FAILED) as session:
            return set(session.scalars(select(DBTask.note_id).distinct()).all())

    # ========== Edge writes ==========

    def insert_edge(self, edge: Edge) -> Edge:
        tables = _TABLES[edge.partition]
        with self._use_session(
            "insert_edge", ErrorCode.STORAGE_WRITE_FAILED, write=True
        ) as session:
            row = tables.edge_model()
            self._apply_edge(tables, row, edge)
            session.add(row)
            session.flush()
            return edge.model_copy(update={"id": row.id})

    def replace_edge(self, edge: Edge) -> Optional[Edge]:
        tables = _TABLES[edge.partition]
        with self._use_session(
            "replace_edge", ErrorCode.STORAGE_WRITE_FAILED, write=True
        ) as session:
            row = session.scalar(
                select(tables.edge_model).where(tables.child_column == edge.child_id)
            )
            if row is None:
                return None
            self._apply_edge(tables, row, edge)
            return edge.model_copy(update={"id": row.id})

    def delete_edge(self, partition: Partition, child_id: int) -> bool:
        tables = _TABLES[partition]
        with self._use_session(
            "delete_edge", ErrorCode.STORAGE_DELETE_FAILED, write=True
        ) as session:
            result = session.execute(
                delete(tables.edge_model).where(tables.child_column == child_id)
            )
            return result.rowcount > 0

    def delete_edges_for_node(self, partition: Partition, node_id: int) -> int:
        tables = _TABLES[partition]
        with self._use_session(
            "delete_edges_for_node", ErrorCode.STORAGE_DELETE_FAILED, write=True
        ) as session:
            result = session.execute(
                delete(tables.edge_model).where(
                    or_(tables.parent_column == node_id, tables.child_column == node_id)
                )
            )
            return result.rowcount

    # ========== Node records (owned by note/tag CRUD) ==========

    def create_note(self, title: str, content: str = "") -> Node:
        """Insert a note and return it as a hierarchy node."""
        with self._use_session(
            "create_note", ErrorCode.STORAGE_WRITE_FAILED, write=True
        ) as session:
            db_note = DBNote(title=title, content=content)
            session.add(db_note)
            session.flush()
            return Node(id=db_note.id, label=db_note.title)

    def create_tag(self, name: str) -> Node:
        """Insert a tag and return it as a hierarchy node."""
        with self._use_session(
            "create_tag", ErrorCode.STORAGE_WRITE_FAILED, write=True
        ) as session:
            db_tag = DBTag(name=name)
            session.add(db_tag)
            session.flush()
            return Node(id=db_tag.id, label=db_tag.name)

    def tag_note(self, note_id: int, tag_id: int) -> None:
        """Associate a tag with a note."""
        with self._use_session(
            "tag_note", ErrorCode.STORAGE_WRITE_FAILED, write=True
        ) as session:
            session.execute(insert(note_tags).values(note_id=note_id, tag_id=tag_id))

    def create_task(self, note_id: int, status: str = "todo") -> Task:
        """Attach a task to a note."""
        with self._use_session(
            "create_task", ErrorCode.STORAGE_WRITE_FAILED, write=True
        ) as session:
            db_task = DBTask(note_id=note_id, status=status)
            session.add(db_task)
            session.flush()
            return Task(id=db_task.id, note_id=db_task.note_id, status=db_task.status)

    # ========== Row mapping ==========

    @staticmethod
    def _apply_edge(tables: _PartitionTables, row: Any, edge: Edge) -> None:
        setattr(row, tables.parent_column.key, edge.parent_id)
        setattr(row, tables.child_column.key, edge.child_id)
        if tables.kind_column is not None:
            kind = edge.relation_kind.value if edge.relation_kind else None
            setattr(row, tables.kind_column.key, kind)

    @staticmethod
    def _row_to_edge(partition: Partition, row: Any) -> Edge:
        tables = _TABLES[partition]
        kind = None
        if tables.kind_column is not None:
            raw_kind = getattr(row, tables.kind_column.key)
            if raw_kind:
                try:
                    kind = RelationKind(raw_kind)
                except ValueError:
                    logger.warning(
                        f"Ignoring unknown relation kind '{raw_kind}' on edge {row.id}"
                    )
        return Edge(
            id=row.id,
            partition=partition,
            parent_id=getattr(row, tables.parent_column.key),
            child_id=getattr(row, tables.child_column.key),
            relation_kind=kind,
        )
