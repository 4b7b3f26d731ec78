"""
Import of legacy XML request files.

Older request files are XML with one element per field, table and optional
condition, at any depth under any root:

    <REQUETE>
      <CHAMPS><CHAMP>nom</CHAMP><CHAMP>age</CHAMP></CHAMPS>
      <TABLES><TABLE>personnes</TABLE></TABLES>
      <CONDITION>age &gt; 30</CONDITION>
    </REQUETE>

They are converted into the JSON request document used on the wire.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union
from xml.parsers.expat import ExpatError

import xmltodict

from signed_query.errors import MalformedRequest
from signed_query.query_docs.translator import build_request


def _text(node: Any) -> str:
    if node is None:
        return ""
    if isinstance(node, dict):
        return str(node.get("#text", "") or "")
    return str(node)


def _collect(node: Any, tag: str, out: list[str]) -> None:
    # Depth-first, document order (xmltodict keeps element order)
    if isinstance(node, list):
        for item in node:
            _collect(item, tag, out)
        return
    if not isinstance(node, dict):
        return
    for key, value in node.items():
        if key.startswith("@") or key == "#text":
            continue
        if key == tag:
            items = value if isinstance(value, list) else [value]
            out.extend(_text(v).strip() for v in items)
            continue
        _collect(value, tag, out)


def load_request_xml(
    source: Union[str, bytes],
    *,
    field_tag: str = "CHAMP",
    table_tag: str = "TABLE",
    condition_tag: str = "CONDITION",
) -> dict[str, Any]:
    try:
        doc = xmltodict.parse(source)
    except ExpatError as e:
        raise MalformedRequest(f"request XML is not well-formed: {e}") from e

    fields: list[str] = []
    tables: list[str] = []
    conditions: list[str] = []
    _collect(doc, field_tag, fields)
    _collect(doc, table_tag, tables)
    _collect(doc, condition_tag, conditions)

    # Only the first condition element counts
    condition: Optional[str] = conditions[0] if conditions and conditions[0] else None
    return build_request(fields, tables, condition)


def load_request_xml_file(path: Union[str, Path], **kwargs: Any) -> dict[str, Any]:
    return load_request_xml(Path(path).read_bytes(), **kwargs)
