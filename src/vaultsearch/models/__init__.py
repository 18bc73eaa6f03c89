"""SQLModel database models for vaultsearch."""

from vaultsearch.models.vectors import (
    VectorRecordBase,
    VectorTableInfo,
    table_name_for,
    vector_model,
)

__all__ = [
    "VectorRecordBase",
    "VectorTableInfo",
    "table_name_for",
    "vector_model",
]
