"""Data Access Layer for orgflow.

Provides a clean interface for database operations.
"""

from orgflow.dal.workflows import WorkflowRepository

__all__ = [
    "WorkflowRepository",
]
