from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError

from signed_query.crypto_utils.signature import SIGNATURE_FIELD
from signed_query.errors import MalformedRequest
from signed_query.query_docs.models import RequestDocument

logger = logging.getLogger(__name__)


def build_request(
    fields: Iterable[str],
    tables: Iterable[str],
    condition: Optional[str] = None,
) -> dict[str, Any]:
    doc = RequestDocument(fields=list(fields), tables=list(tables), condition=condition)
    _require_non_empty(doc)
    return doc.model_dump()


def _require_non_empty(doc: RequestDocument) -> None:
    if not doc.fields:
        raise MalformedRequest("request has no fields")
    if not doc.tables:
        raise MalformedRequest("request has no tables")


def parse_request(request: Union[dict, RequestDocument]) -> str:
    """
    Translate a request document into a flat query:

        SELECT f1, f2 FROM t1, t2 [WHERE <condition>]

    Fields and tables keep document order. The condition is appended verbatim
    and nothing is escaped: the request is trusted only because its envelope
    signature verified.
    """
    if isinstance(request, RequestDocument):
        doc = request
    elif isinstance(request, dict):
        body = {k: v for k, v in request.items() if k != SIGNATURE_FIELD}
        try:
            doc = RequestDocument.model_validate(body)
        except ValidationError as e:
            raise MalformedRequest(f"request document has the wrong shape: {e.errors()[0]['msg']}") from e
    else:
        raise MalformedRequest("request document must be a JSON object")

    _require_non_empty(doc)

    query = f"SELECT {', '.join(doc.fields)} FROM {', '.join(doc.tables)}"
    if doc.condition:
        query += f" WHERE {doc.condition}"

    logger.debug("translated request into query: %s", query)
    return query

