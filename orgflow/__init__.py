"""orgflow: workflow template management for multi-tenant organizations."""

__version__ = "0.1.0"
