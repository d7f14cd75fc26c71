"""MCP server exposing the Draftsmith hierarchies."""

import json
import logging
import uuid
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from draftsmith.config import config
from draftsmith.exceptions import DraftsmithError, HierarchyError
from draftsmith.models.schema import forest_to_json
from draftsmith.observability import metrics, timed_operation
from draftsmith.services.hierarchy_service import HierarchyService

logger = logging.getLogger(__name__)


class DraftsmithMcpServer:
    """MCP server for the note and tag hierarchies."""

    def __init__(self, engine=None):
        """Initialize the MCP server.

        Args:
            engine: Pre-configured SQLAlchemy engine shared by the store.
                    When None, the store creates one from config.
        """
        self.mcp = FastMCP(config.server_name)
        self.hierarchy_service = HierarchyService(engine=engine)
        self._register_tools()
        logger.info("Draftsmith MCP server initialized")

    def format_error_response(self, error: Exception) -> str:
        """Format an error response in a consistent way.

        Args:
            error: The exception that occurred

        Returns:
            Formatted error message with appropriate level of detail
        """
        # Generate a unique error ID for traceability in logs
        error_id = str(uuid.uuid4())[:8]

        if isinstance(error, HierarchyError):
            # Rejected edits are expected; the message is safe to show
            logger.info(f"[{error.code.name}] [{error_id}]: {error}")
            return f"Error: {error.message}"
        elif isinstance(error, DraftsmithError):
            logger.error(
                f"[{error.code.name}] [{error_id}]: {error.message}",
                extra={"error_details": error.details},
            )
            return f"Error: {error.message}"
        elif isinstance(error, ValueError):
            logger.error(f"Validation error [{error_id}]: {str(error)}")
            return f"Error: Invalid input (ref: {error_id})"
        else:
            logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
            return f"Error: An unexpected error occurred (ref: {error_id})"

    def _fail(self, op: dict, error: Exception) -> str:
        op["error"] = error
        return self.format_error_response(error)

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.mcp.tool(name="ds_add_hierarchy_entry")
        def ds_add_hierarchy_entry(
            partition: str,
            parent_id: int,
            child_id: int,
            relation_kind: Optional[str] = None,
        ) -> str:
            """Place a note or tag under a parent.
            Args:
                partition: "notes" or "tags"
                parent_id: ID of the parent node
                child_id: ID of the child node (must not have a parent yet)
                relation_kind: For notes only: page, block or subpage
            """
            with timed_operation(
                "ds_add_hierarchy_entry", partition=partition, child_id=child_id
            ) as op:
                try:
                    edge = self.hierarchy_service.add_hierarchy_entry(
                        partition, parent_id, child_id, relation_kind
                    )
                    op["edge_id"] = edge.id
                    return (
                        f"Hierarchy entry added successfully with ID: {edge.id} "
                        f"({edge.parent_id} -> {edge.child_id})"
                    )
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="ds_update_hierarchy_entry")
        def ds_update_hierarchy_entry(
            partition: str,
            child_id: int,
            parent_id: int,
            relation_kind: Optional[str] = None,
        ) -> str:
            """Move a note or tag under a different parent.
            Args:
                partition: "notes" or "tags"
                child_id: ID of the child whose parent changes
                parent_id: ID of the new parent
                relation_kind: For notes only: page, block or subpage (kept if omitted)
            """
            with timed_operation(
                "ds_update_hierarchy_entry", partition=partition, child_id=child_id
            ) as op:
                try:
                    edge = self.hierarchy_service.update_hierarchy_entry(
                        partition, child_id, parent_id, relation_kind
                    )
                    op["edge_id"] = edge.id
                    return (
                        f"Hierarchy entry updated successfully "
                        f"({edge.parent_id} -> {edge.child_id})"
                    )
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="ds_delete_hierarchy_entry")
        def ds_delete_hierarchy_entry(partition: str, child_id: int) -> str:
            """Remove the parent link of a note or tag, making it a root.
            Args:
                partition: "notes" or "tags"
                child_id: ID of the child whose parent link is removed
            """
            with timed_operation(
                "ds_delete_hierarchy_entry", partition=partition, child_id=child_id
            ) as op:
                try:
                    self.hierarchy_service.delete_hierarchy_entry(partition, child_id)
                    return f"Hierarchy entry for {child_id} deleted successfully"
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="ds_get_tree")
        def ds_get_tree(partition: str, sort: Optional[str] = None) -> str:
            """Get the full hierarchy of notes or tags as a JSON forest.
            Args:
                partition: "notes" or "tags"
                sort: "insertion" (store order) or "label" (alphabetical)
            """
            with timed_operation("ds_get_tree", partition=partition) as op:
                try:
                    forest = self.hierarchy_service.get_tree(partition, sort)
                    op["root_count"] = len(forest)
                    return forest_to_json(forest)
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="ds_get_task_tree")
        def ds_get_task_tree(sort: Optional[str] = None) -> str:
            """Get the note hierarchy reduced to notes with tasks and their ancestors.
            Args:
                sort: "insertion" (store order) or "label" (alphabetical)
            """
            with timed_operation("ds_get_task_tree") as op:
                try:
                    forest = self.hierarchy_service.get_task_tree(sort)
                    op["root_count"] = len(forest)
                    return forest_to_json(forest)
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="ds_get_tag_tree")
        def ds_get_tag_tree(sort: Optional[str] = None) -> str:
            """Get the tag hierarchy with the notes carrying each tag.
            Args:
                sort: "insertion" (store order) or "label" (alphabetical)
            """
            with timed_operation("ds_get_tag_tree") as op:
                try:
                    forest = self.hierarchy_service.get_tag_tree(sort)
                    op["root_count"] = len(forest)
                    return forest_to_json(forest)
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="ds_get_tags_with_notes")
        def ds_get_tags_with_notes() -> str:
            """List every tag with the notes carrying it, ordered by tag name."""
            with timed_operation("ds_get_tags_with_notes") as op:
                try:
                    tags = self.hierarchy_service.get_tags_with_notes()
                    op["tag_count"] = len(tags)
                    return json.dumps([t.model_dump() for t in tags], indent=2)
                except Exception as e:
                    return self._fail(op, e)

        @self.mcp.tool(name="ds_status")
        def ds_status() -> str:
            """Show server health and per-operation metrics."""
            status: dict[str, Any] = {
                "server": config.server_name,
                "version": config.server_version,
                "summary": metrics.get_summary(),
                "operations": metrics.get_metrics(),
            }
            return json.dumps(status, indent=2, default=str)

    def run(self) -> None:
        """Run the MCP server."""
        self.mcp.run()
