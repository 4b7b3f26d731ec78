from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from signed_query.barrier import Gate, HandshakeBarrier
from signed_query.config import ExchangeSettings
from signed_query.crypto_utils.identity import Identity, KeyPairProvider, RsaKeyPairProvider
from signed_query.party.roles import ExchangePaths, Outcome, Party, Role
from signed_query.store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExchangeReport:
    requester: Outcome
    responder: Outcome

    @property
    def ok(self) -> bool:
        return self.requester.ok and self.responder.ok


def exchange_keys(
    requester_identity: Identity,
    responder_identity: Identity,
    barrier: HandshakeBarrier,
    paths: ExchangePaths,
    *,
    request: dict,
    store: Store,
    timeout: Optional[float] = None,
) -> tuple[Party, Party]:
    """
    Build both parties, each holding the other's public key, then open the
    keys_exchanged gate. Peer keys are fixed from here on.
    """
    requester = Party(
        Role.REQUESTER,
        requester_identity,
        responder_identity.public_key,
        barrier,
        paths,
        request=request,
        timeout=timeout,
    )
    responder = Party(
        Role.RESPONDER,
        responder_identity,
        requester_identity.public_key,
        barrier,
        paths,
        store=store,
        timeout=timeout,
    )
    barrier.signal(Gate.KEYS_EXCHANGED)
    logger.info(
        "keys exchanged (requester=%s, responder=%s)",
        requester_identity.key_id,
        responder_identity.key_id,
    )
    return requester, responder


def run_exchange(
    request: dict,
    store: Store,
    paths: Optional[ExchangePaths] = None,
    *,
    settings: Optional[ExchangeSettings] = None,
    provider: Optional[KeyPairProvider] = None,
    timeout: Optional[float] = None,
) -> ExchangeReport:
    """
    One complete run: fresh identities and barrier, two concurrent party
    threads, both outcomes returned.
    """
    settings = settings or ExchangeSettings()
    paths = paths or ExchangePaths(root=settings.exchange_dir)
    provider = provider or RsaKeyPairProvider(settings.key_size)
    if timeout is None:
        timeout = settings.barrier_timeout

    paths.ensure_dirs()

    barrier = HandshakeBarrier(default_timeout=timeout)
    requester_identity = Identity.generate("requester", provider)
    responder_identity = Identity.generate("responder", provider)

    requester, responder = exchange_keys(
        requester_identity,
        responder_identity,
        barrier,
        paths,
        request=request,
        store=store,
        timeout=timeout,
    )

    responder.start()
    requester.start()
    try:
        requester_outcome = requester.join()
    finally:
        # both threads are joined before a crash propagates
        responder_outcome = responder.join()
    assert requester_outcome is not None and responder_outcome is not None

    report = ExchangeReport(requester=requester_outcome, responder=responder_outcome)
    logger.info(
        "exchange finished: requester=%s responder=%s (phase=%s)",
        report.requester.status,
        report.responder.status,
        barrier.phase.value,
    )
    return report
