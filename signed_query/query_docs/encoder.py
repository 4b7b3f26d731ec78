from __future__ import annotations

import base64
import datetime as _dt
import logging
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import ValidationError

from signed_query.crypto_utils.signature import SIGNATURE_FIELD
from signed_query.errors import EncodingError
from signed_query.query_docs.models import ResultDocument, Rowset

logger = logging.getLogger(__name__)


def stringify_value(value: Any) -> Optional[str]:
    """
    Text form of one column value. None stays None (explicit absent marker).
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float, Decimal)):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (_dt.datetime, _dt.date, _dt.time)):
        return value.isoformat()
    try:
        return str(value)
    except Exception as e:
        raise EncodingError(f"cannot stringify value of type {type(value).__name__}: {e}") from e


def encode_rowset(rowset: Rowset) -> dict[str, Any]:
    """
    Rowset -> result document. Rows keep retrieval order, values keep
    column (metadata) order.
    """
    columns = [str(c) for c in rowset.columns]
    width = len(columns)

    rows: list[list[Optional[str]]] = []
    for i, row in enumerate(rowset.rows, start=1):
        if len(row) != width:
            raise EncodingError(f"row {i} has {len(row)} values, expected {width}")
        rows.append([stringify_value(v) for v in row])

    logger.debug("encoded %d rows x %d columns", len(rows), width)
    return ResultDocument(columns=columns, rows=rows).model_dump()


def decode_result(document: Union[dict, ResultDocument]) -> Rowset:
    """Result document -> Rowset of strings (None where the value was absent)."""
    if isinstance(document, ResultDocument):
        doc = document
    elif isinstance(document, dict):
        body = {k: v for k, v in document.items() if k != SIGNATURE_FIELD}
        try:
            doc = ResultDocument.model_validate(body)
        except ValidationError as e:
            raise EncodingError(f"result document has the wrong shape: {e.errors()[0]['msg']}") from e
    else:
        raise EncodingError("result document must be a JSON object")

    width = len(doc.columns)
    for i, row in enumerate(doc.rows, start=1):
        if width and len(row) != width:
            raise EncodingError(f"row {i} has {len(row)} values, expected {width}")

    return Rowset(
        columns=tuple(doc.columns),
        rows=tuple(tuple(r) for r in doc.rows),
    )


def format_rows(document: Union[dict, ResultDocument, Rowset]) -> str:
    """
    Human report, one line per row:

        Row 1: Alice 30
        Row 2: Bob NULL
    """
    rowset = document if isinstance(document, Rowset) else decode_result(document)
    lines = []
    for i, row in enumerate(rowset.rows, start=1):
        vals = " ".join("NULL" if v is None else str(v) for v in row)
        lines.append(f"Row {i}: {vals}")
    return "\n".join(lines) + ("\n" if lines else "")

