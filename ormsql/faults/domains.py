"""
ormsql faults - Domain-specific fault types.

Schema resolution, operator/value validation, and dialect capability
faults raised by the generator and the connection layer.
"""

from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


# ============================================================================
# MODEL Faults
# ============================================================================

class ModelFault(Fault):
    """Base class for model, schema and query generation faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        retryable: bool = False,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.MODEL,
            severity=severity,
            retryable=retryable,
            public=public,
            metadata=metadata,
        )


class ModelNotFoundFault(ModelFault):
    """Model not found in registry."""

    def __init__(self, model_name: str, **kwargs):
        super().__init__(
            code="MODEL_NOT_FOUND",
            message=f"Model '{model_name}' not found in ModelRegistry",
            severity=Severity.FATAL,
            metadata={"model": model_name, **kwargs.get("metadata", {})},
        )


class FieldNotFoundFault(ModelFault):
    """Field could not be resolved on a model."""

    def __init__(self, model: str, field: str, **kwargs):
        super().__init__(
            code="FIELD_NOT_FOUND",
            message=f"Unable to find field named '{field}' on model '{model}'",
            severity=Severity.FATAL,
            metadata={"model": model, "field": field, **kwargs.get("metadata", {})},
        )


class PrimaryKeyRequiredFault(ModelFault):
    """Operation needs a primary key the model (or instance) does not have."""

    def __init__(self, model: str, operation: str, **kwargs):
        super().__init__(
            code="PRIMARY_KEY_REQUIRED",
            message=f"Model '{model}' requires a primary key for {operation}",
            severity=Severity.FATAL,
            metadata={"model": model, "operation": operation, **kwargs.get("metadata", {})},
        )


class QueryFault(ModelFault):
    """Query could not be turned into SQL."""

    def __init__(self, model: str, operation: str, reason: str, **kwargs):
        super().__init__(
            code="QUERY_INVALID",
            message=f"Query on '{model}' ({operation}) is invalid: {reason}",
            metadata={"model": model, "operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )


class OperatorValueFault(ModelFault):
    """Operator was given a value it can not compare against."""

    def __init__(self, operator: str, reason: str, **kwargs):
        super().__init__(
            code="OPERATOR_VALUE_MISMATCH",
            message=f"Operator '{operator}': {reason}",
            metadata={"operator": operator, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# CONNECTION Faults
# ============================================================================

class UnsupportedOperationFault(Fault):
    """Dialect does not implement the requested operation."""

    def __init__(self, operation: str, connection: str, **kwargs):
        super().__init__(
            code="UNSUPPORTED_OPERATION",
            message=f"{connection}::{operation}: This operation is not supported for this connection type.",
            domain=FaultDomain.CONNECTION,
            metadata={"operation": operation, "connection": connection, **kwargs.get("metadata", {})},
        )


class ConnectionStateFault(Fault):
    """Connection used before connect() or after disconnect()."""

    def __init__(self, connection: str, reason: str, **kwargs):
        super().__init__(
            code="CONNECTION_STATE",
            message=f"{connection}: {reason}",
            domain=FaultDomain.CONNECTION,
            metadata={"connection": connection, "reason": reason, **kwargs.get("metadata", {})},
        )
