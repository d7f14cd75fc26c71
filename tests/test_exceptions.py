"""Tests for the structured exception hierarchy."""
from draftsmith.exceptions import (
    CycleDetectedError,
    DraftsmithError,
    DuplicateChildError,
    EdgeNotFoundError,
    ErrorCode,
    HierarchyError,
    InvalidRelationKindError,
    StorageError,
    ValidationError,
)


class TestHierarchyErrors:
    """Tests for rejected-edit errors."""

    def test_all_are_hierarchy_errors(self):
        errors = [
            CycleDetectedError("notes", 3, 1, [1, 2, 3, 1]),
            InvalidRelationKindError("chapter", "notes", ["page"]),
            EdgeNotFoundError("tags", 4),
            DuplicateChildError("notes", 2, 1),
        ]
        for error in errors:
            assert isinstance(error, HierarchyError)
            assert isinstance(error, DraftsmithError)

    def test_cycle_details(self):
        error = CycleDetectedError("notes", 3, 1, [1, 2, 3, 1])
        assert error.code == ErrorCode.HIERARCHY_CYCLE
        assert error.details == {
            "parent_id": 3,
            "cycle": "1 -> 2 -> 3 -> 1",
            "partition": "notes",
            "child_id": 1,
        }

    def test_to_dict(self):
        data = EdgeNotFoundError("tags", 4).to_dict()
        assert data["error"] == "EdgeNotFoundError"
        assert data["code"] == 1003
        assert data["code_name"] == "EDGE_NOT_FOUND"
        assert data["details"]["child_id"] == 4

    def test_str_includes_code_and_details(self):
        text = str(DuplicateChildError("notes", 2, 1))
        assert text.startswith("[DUPLICATE_CHILD]")
        assert "existing_parent_id=1" in text

    def test_relation_kind_message(self):
        with_allowed = InvalidRelationKindError("x", "notes", ["page", "block"])
        assert "page, block" in with_allowed.message
        without = InvalidRelationKindError("page", "tags")
        assert "not allowed" in without.message

    def test_relation_kind_value_truncated(self):
        error = InvalidRelationKindError("x" * 500, "notes", ["page"])
        assert len(error.details["value"]) == 100


class TestOtherErrors:
    """Tests for storage and validation errors."""

    def test_storage_error_keeps_original(self):
        original = RuntimeError("database is locked")
        error = StorageError("write failed", operation="insert_edge", original_error=original)
        assert error.original_error is original
        assert error.details["original_error"] == "database is locked"
        assert error.code == ErrorCode.STORAGE_READ_FAILED

    def test_validation_error(self):
        error = ValidationError("bad", field="partition", value="projects")
        assert error.details == {"field": "partition", "value": "projects"}
        assert str(error) == "[VALIDATION_FAILED] bad (field=partition, value=projects)"

    def test_no_details(self):
        assert str(DraftsmithError("plain")) == "[VALIDATION_FAILED] plain"

    def test_storage_codes_match_store_operations(self):
        """Each storage code belongs to a kind of store operation."""
        storage_codes = {c.name for c in ErrorCode if 4000 <= c.value < 5000}
        assert storage_codes == {
            "STORAGE_READ_FAILED",
            "STORAGE_WRITE_FAILED",
            "STORAGE_DELETE_FAILED",
        }
