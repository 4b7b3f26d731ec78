from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class RequestDocument(BaseModel):
    """
    Declarative query request.

    {"fields": ["name", ...], "tables": ["users", ...], "condition": "id=1" | null}
    """
    model_config = ConfigDict(extra="ignore")

    fields: List[str] = Field(default_factory=list)
    tables: List[str] = Field(default_factory=list)
    condition: Optional[str] = None


class ResultDocument(BaseModel):
    """
    Rows in retrieval order; each row holds one stringified value per column.
    null marks an absent (SQL NULL) value.
    """
    model_config = ConfigDict(extra="ignore")

    columns: List[str] = Field(default_factory=list)
    rows: List[List[Optional[str]]] = Field(default_factory=list)


@dataclass(frozen=True)
class Rowset:
    columns: Tuple[str, ...] = ()
    rows: Tuple[Tuple[Any, ...], ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.rows)
