"""Vector record models — one physical table per embedding model.

Provides ``VectorRecordBase`` (non-table base) and :func:`vector_model`,
which builds the concrete ``table=True`` subclass for a table name.
``VectorTableInfo`` records which table belongs to which model.
"""

from __future__ import annotations

import hashlib
import re
import types
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime
from sqlmodel import Field, SQLModel

from vaultsearch.search.types import ChunkSpan

TABLE_PREFIX = "vector_data_"
_SANITIZE_RE = re.compile(r"[^a-zA-Z0-9]")
_MAX_SANITIZED_LENGTH = 40


class VectorRecordBase(SQLModel):
    """Base fields for a vector record. Subclassed per model by :func:`vector_model`."""

    id: int | None = Field(default=None, primary_key=True)
    path: str = Field(index=True)
    mtime: int = Field(default=0, sa_type=BigInteger)  # type: ignore[invalid-argument-type]
    content: str = Field(default="")
    embedding: list[float] = Field(default_factory=list, sa_type=JSON)  # type: ignore[invalid-argument-type]
    start_line: int = Field(default=0)
    end_line: int = Field(default=0)

    @property
    def span(self) -> ChunkSpan:
        """Return the record's chunk span."""
        return ChunkSpan(self.start_line, self.end_line)

    @property
    def chunk_metadata(self) -> dict[str, int]:
        """Return the span in the host's ``{startLine, endLine}`` shape."""
        return {"startLine": self.start_line, "endLine": self.end_line}


class VectorTableInfo(SQLModel, table=True):
    """Catalog row binding a model id to its vector table — ``vaultsearch_vector_tables``."""

    __tablename__ = "vaultsearch_vector_tables"

    model_id: str = Field(primary_key=True)
    table_name: str = Field(unique=True)
    dimension: int
    index_strategy: str = Field(default="")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


def table_name_for(model_id: str) -> str:
    """Return the deterministic physical table name for *model_id*.

    Characters outside ``[A-Za-z0-9]`` become ``_``; a short hash of the
    raw id keeps ids that sanitize identically (``a/b`` vs ``a_b``) apart.
    """
    sanitized = _SANITIZE_RE.sub("_", model_id)[:_MAX_SANITIZED_LENGTH]
    digest = hashlib.sha1(model_id.encode()).hexdigest()[:8]
    return f"{TABLE_PREFIX}{sanitized}_{digest}"


# table name → concrete model class.  SQLModel.metadata is process-wide, so
# each table class is defined exactly once.
_MODELS: dict[str, type[VectorRecordBase]] = {}


def vector_model(table_name: str) -> type[VectorRecordBase]:
    """Return the ``table=True`` record class for *table_name*, creating it once."""
    model = _MODELS.get(table_name)
    if model is not None:
        return model

    class_name = "".join(part.capitalize() for part in table_name.split("_") if part)

    def _body(ns: dict[str, Any]) -> None:
        ns["__tablename__"] = table_name
        ns["__module__"] = __name__

    model = types.new_class(class_name, (VectorRecordBase,), {"table": True}, _body)
    _MODELS[table_name] = model
    return model
