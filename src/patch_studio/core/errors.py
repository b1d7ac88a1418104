"""
Graph Errors - Exceptions raised by structural graph operations.

Structural errors are raised synchronously by the mutation that caused
them and leave the graph unchanged. Evaluation failures are not raised;
they are recorded on the node as a NodeError (see core.node).
"""

from __future__ import annotations


class GraphError(Exception):
    """Base class for interaction graph errors."""


class UnknownNodeTypeError(GraphError, KeyError):
    """Raised when the registry has no constructor for a type name."""

    def __init__(self, type_name: str):
        super().__init__(type_name)
        self.type_name = type_name

    def __str__(self) -> str:
        return f"Unknown node type: {self.type_name}"


class InvalidConnectionError(GraphError):
    """Raised when a connection cannot be made (bad endpoint, type mismatch, cycle)."""


class GraphInvariantError(GraphError):
    """Raised when a caller breaks a graph invariant (duplicate id, wrong thread)."""
