"""
The two parties of a query exchange and their fixed scripts.

Requester: await keys_exchanged -> sign request -> persist -> signal
request_ready -> await result_ready -> verify result -> report rows.

Responder: await keys_exchanged -> await request_ready -> verify request ->
translate -> execute on the store -> encode -> sign -> persist -> signal
result_ready.

A script returns an Outcome or raises an ExchangeError; Party.run() turns
every ExchangeError into a terminal Outcome and aborts the barrier so the
peer never waits on a run that cannot complete.
"""

from __future__ import annotations

import enum
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Literal, Optional, Union

from signed_query.barrier import Gate, HandshakeBarrier
from signed_query.crypto_utils.encoding import atomic_write_json
from signed_query.crypto_utils.identity import Identity, PublicKey
from signed_query.crypto_utils.signature import (
    explain_verification,
    load_signed_document,
    save_signed_document,
    sign_document,
)
from signed_query.errors import (
    BarrierWaitAborted,
    ExchangeError,
    StoreError,
    VerificationFailure,
)
from signed_query.query_docs import decode_result, encode_rowset, format_rows, parse_request
from signed_query.query_docs.models import Rowset
from signed_query.store import Store

logger = logging.getLogger(__name__)


class Role(enum.Enum):
    REQUESTER = "requester"
    RESPONDER = "responder"


Status = Literal["completed", "rejected", "aborted", "failed"]


@dataclass(frozen=True)
class Outcome:
    """
    Terminal state of one party's script.

    - completed: script ran to the end (requester: result verified)
    - rejected: a signature did not verify
    - aborted: the barrier was aborted by the peer or a bounded wait expired
    - failed: signing, translation, store or encoding failure
    """
    role: Role
    status: Status
    message: str
    rows: Optional[Rowset] = None
    query: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "completed"


@dataclass(frozen=True)
class ExchangePaths:
    """
    Where the exchanged documents live:

      <root>/signed/<name>             signed request
      <root>/results/<name>            unsigned result
      <root>/results/signed/<name>     signed result
    """
    root: Union[str, Path] = "requests"
    name: str = "request.json"

    @property
    def signed_request(self) -> str:
        return os.path.join(str(self.root), "signed", self.name)

    @property
    def result(self) -> str:
        return os.path.join(str(self.root), "results", self.name)

    @property
    def signed_result(self) -> str:
        return os.path.join(str(self.root), "results", "signed", self.name)

    def ensure_dirs(self) -> None:
        for p in (self.signed_request, self.signed_result):
            os.makedirs(os.path.dirname(p), exist_ok=True)


# =============================================================================
# Party
# =============================================================================

class Party:
    def __init__(
        self,
        role: Role,
        identity: Identity,
        peer_public_key: PublicKey,
        barrier: HandshakeBarrier,
        paths: ExchangePaths,
        *,
        request: Optional[dict] = None,
        store: Optional[Store] = None,
        timeout: Optional[float] = None,
    ):
        if role is Role.REQUESTER and request is None:
            raise ValueError("requester needs a request document")
        if role is Role.RESPONDER and store is None:
            raise ValueError("responder needs a store")

        self.role = role
        self.identity = identity
        self._peer_public_key = peer_public_key
        self.barrier = barrier
        self.paths = paths
        self.request = request
        self.store = store
        self.timeout = timeout

        self.outcome: Optional[Outcome] = None
        self._thread: Optional[threading.Thread] = None
        self._exc: Optional[BaseException] = None

    @property
    def peer_public_key(self) -> PublicKey:
        return self._peer_public_key

    @property
    def name(self) -> str:
        return self.role.value

    def await_gate(self, gate: Gate) -> None:
        self.barrier.await_gate(gate, timeout=self.timeout)
        logger.debug("%s passed %s", self.name, gate.value)

    def verify_or_reject(self, doc: Any, what: str) -> None:
        reason = explain_verification(doc, self.peer_public_key)
        if reason is not None:
            raise VerificationFailure(f"{what} signature rejected: {reason}")
        logger.info("%s verified the %s signature", self.name, what)

    # ----------------------------
    # Running
    # ----------------------------

    def run(self) -> Outcome:
        script = ROLE_SCRIPTS[self.role]
        try:
            outcome = script(self)
        except VerificationFailure as e:
            logger.warning("%s rejected: %s", self.name, e)
            self.barrier.abort(f"{self.name} rejected: {e}")
            outcome = Outcome(self.role, "rejected", str(e), error=type(e).__name__)
        except BarrierWaitAborted as e:
            logger.warning("%s stopped: %s", self.name, e)
            self.barrier.abort(f"{self.name} stopped: {e}")
            outcome = Outcome(self.role, "aborted", str(e), error=type(e).__name__)
        except ExchangeError as e:
            logger.error("%s failed: %s", self.name, e)
            self.barrier.abort(f"{self.name} failed: {e}")
            outcome = Outcome(self.role, "failed", str(e), error=type(e).__name__)
        except Exception as e:
            self.barrier.abort(f"{self.name} crashed: {type(e).__name__}")
            raise

        self.outcome = outcome
        return outcome

    def _thread_main(self) -> None:
        try:
            self.run()
        except Exception as e:
            logger.exception("%s script crashed", self.name)
            self._exc = e

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"{self.name} already started")
        self._thread = threading.Thread(target=self._thread_main, name=f"{self.name}-party", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> Optional[Outcome]:
        """Wait for the script thread; re-raises an unexpected crash."""
        if self._thread is None:
            raise RuntimeError(f"{self.name} was never started")
        self._thread.join(timeout)
        if self._exc is not None:
            raise self._exc
        return self.outcome

    def __repr__(self) -> str:
        return f"Party(role={self.name!r}, identity={self.identity!r})"


# =============================================================================
# Role scripts
# =============================================================================

def run_requester(party: Party) -> Outcome:
    b = party.barrier
    paths = party.paths

    party.await_gate(Gate.KEYS_EXCHANGED)
    logger.info("requester has the responder public key")

    signed = sign_document(party.request, party.identity.private_key)
    save_signed_document(paths.signed_request, signed)
    logger.info("requester signed the request into %s", paths.signed_request)
    b.signal(Gate.REQUEST_READY)

    party.await_gate(Gate.RESULT_READY)
    logger.info("requester received the signed result")

    doc = load_signed_document(paths.signed_result)
    party.verify_or_reject(doc, "result")

    rowset = decode_result(doc)
    b.finish()
    return Outcome(
        party.role,
        "completed",
        f"received {len(rowset)} rows with a valid signature",
        rows=rowset,
    )


def run_responder(party: Party) -> Outcome:
    b = party.barrier
    paths = party.paths

    party.await_gate(Gate.KEYS_EXCHANGED)
    logger.info("responder has the requester public key")
    party.await_gate(Gate.REQUEST_READY)
    logger.info("responder received the signed request")

    doc = load_signed_document(paths.signed_request)
    party.verify_or_reject(doc, "request")

    query = parse_request(doc)
    logger.info("responder extracted query: %s", query)

    assert party.store is not None
    try:
        rowset = party.store.execute(query)
    except StoreError:
        raise
    except Exception as e:
        raise StoreError(f"store failed: {e}") from e

    result = encode_rowset(rowset)
    atomic_write_json(paths.result, result, mode=0o644)
    signed = sign_document(result, party.identity.private_key)
    save_signed_document(paths.signed_result, signed)
    logger.info("responder signed %d result rows into %s", len(rowset), paths.signed_result)
    logger.debug("result rows:\n%s", format_rows(result))

    b.signal(Gate.RESULT_READY)
    return Outcome(party.role, "completed", f"answered with {len(rowset)} rows", rows=rowset, query=query)


ROLE_SCRIPTS: dict[Role, Callable[[Party], Outcome]] = {
    Role.REQUESTER: run_requester,
    Role.RESPONDER: run_responder,
}
