"""
ormsql faults - structured fault types.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
- ModelFault and its schema/query subclasses
- UnsupportedOperationFault, ConnectionStateFault
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ModelFault,
    ModelNotFoundFault,
    FieldNotFoundFault,
    PrimaryKeyRequiredFault,
    QueryFault,
    OperatorValueFault,
    UnsupportedOperationFault,
    ConnectionStateFault,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
    "ModelFault",
    "ModelNotFoundFault",
    "FieldNotFoundFault",
    "PrimaryKeyRequiredFault",
    "QueryFault",
    "OperatorValueFault",
    "UnsupportedOperationFault",
    "ConnectionStateFault",
]
