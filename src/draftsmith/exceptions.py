"""Custom exceptions for Draftsmith.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Hierarchy errors (1xxx)
    HIERARCHY_CYCLE = 1001
    INVALID_RELATION_KIND = 1002
    EDGE_NOT_FOUND = 1003
    DUPLICATE_CHILD = 1004

    # Storage errors (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_DELETE_FAILED = 4003

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    INVALID_PARTITION = 7002


class DraftsmithError(Exception):
    """Base exception for all Draftsmith errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class HierarchyError(DraftsmithError):
    """Base class for rejected hierarchy edits.

    Always raised before anything is written, so the edge set is left
    exactly as it was.
    """

    def __init__(
        self,
        message: str,
        partition: Optional[str] = None,
        child_id: Optional[int] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if partition:
            details["partition"] = partition
        if child_id is not None:
            details["child_id"] = child_id

        super().__init__(message, code=code, details=details)
        self.partition = partition
        self.child_id = child_id


class CycleDetectedError(HierarchyError):
    """Raised when an edit would make a node its own ancestor."""

    def __init__(
        self,
        partition: str,
        parent_id: int,
        child_id: int,
        cycle: Optional[List[int]] = None,
    ):
        details: Dict[str, Any] = {"parent_id": parent_id}
        if cycle:
            details["cycle"] = " -> ".join(str(node) for node in cycle)
        super().__init__(
            "Operation would create a cycle in the hierarchy",
            partition=partition,
            child_id=child_id,
            code=ErrorCode.HIERARCHY_CYCLE,
            details=details,
        )
        self.parent_id = parent_id
        self.cycle = list(cycle) if cycle else []


class InvalidRelationKindError(HierarchyError):
    """Raised when a relation kind is outside the allowed set."""

    def __init__(
        self,
        value: Any,
        partition: Optional[str] = None,
        allowed: Optional[List[str]] = None,
    ):
        if allowed:
            message = (
                f"Invalid relation kind '{value}'. "
                f"Must be one of: {', '.join(allowed)}"
            )
        else:
            message = f"Relation kind '{value}' is not allowed in this partition"
        super().__init__(
            message,
            partition=partition,
            code=ErrorCode.INVALID_RELATION_KIND,
            details={"value": str(value)[:100]},
        )
        self.value = value
        self.allowed = list(allowed) if allowed else []


class EdgeNotFoundError(HierarchyError):
    """Raised when no hierarchy edge exists for a child."""

    def __init__(self, partition: str, child_id: int):
        super().__init__(
            f"Hierarchy entry for child {child_id} not found",
            partition=partition,
            child_id=child_id,
            code=ErrorCode.EDGE_NOT_FOUND,
        )


class DuplicateChildError(HierarchyError):
    """Raised when adding a parent to a child that already has one."""

    def __init__(self, partition: str, child_id: int, existing_parent_id: int):
        super().__init__(
            f"Child {child_id} already has parent {existing_parent_id}; "
            "update the existing entry instead",
            partition=partition,
            child_id=child_id,
            code=ErrorCode.DUPLICATE_CHILD,
            details={"existing_parent_id": existing_parent_id},
        )
        self.existing_parent_id = existing_parent_id


class StorageError(DraftsmithError):
    """Raised for Graph Store failures.

    The hierarchy engine never interprets or retries these; they surface
    to the caller as-is.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.original_error = original_error


class ConfigurationError(DraftsmithError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key


class ValidationError(DraftsmithError):
    """Raised for general validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
