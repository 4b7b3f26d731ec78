"""
Three-gate handshake barrier shared by the two parties of one run.

Gates open in a fixed order, keys_exchanged -> request_ready -> result_ready,
and never close again. Each gate has its own lock/condition so waiters on one
gate are not woken by another gate opening. abort() is the only signal that
crosses gates: it wakes every waiter so no party blocks on a run that has
already failed.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Optional

from signed_query.errors import BarrierTimeout, BarrierWaitAborted, PhaseOrderError

logger = logging.getLogger(__name__)


class Gate(enum.Enum):
    KEYS_EXCHANGED = "keys_exchanged"
    REQUEST_READY = "request_ready"
    RESULT_READY = "result_ready"


class Phase(enum.Enum):
    INIT = "init"
    KEYS_EXCHANGED = "keys_exchanged"
    REQUEST_READY = "request_ready"
    RESULT_READY = "result_ready"
    DONE = "done"


GATE_ORDER: tuple[Gate, ...] = (Gate.KEYS_EXCHANGED, Gate.REQUEST_READY, Gate.RESULT_READY)


class _Latch:
    def __init__(self) -> None:
        self.cond = threading.Condition(threading.Lock())
        self.is_set = False


class HandshakeBarrier:
    """
    Monotonic three-phase barrier.

    signal(gate)       idempotent; opens gate and wakes its waiters
    await_gate(gate)   blocks until gate is open (or abort / timeout)
    abort(reason)      fails the run; all current and future waits raise
    """
    def __init__(self, *, default_timeout: Optional[float] = None) -> None:
        self.default_timeout = default_timeout
        self._latches: dict[Gate, _Latch] = {g: _Latch() for g in GATE_ORDER}
        self._state_lock = threading.Lock()
        self._abort_reason: Optional[str] = None
        self._done = False

    # ----------------------------
    # Queries
    # ----------------------------

    def is_set(self, gate: Gate) -> bool:
        latch = self._latches[gate]
        with latch.cond:
            return latch.is_set

    @property
    def aborted(self) -> bool:
        with self._state_lock:
            return self._abort_reason is not None

    @property
    def abort_reason(self) -> Optional[str]:
        with self._state_lock:
            return self._abort_reason

    @property
    def phase(self) -> Phase:
        with self._state_lock:
            if self._done:
                return Phase.DONE
        current = Phase.INIT
        for g in GATE_ORDER:
            if not self.is_set(g):
                break
            current = Phase(g.value)
        return current

    # ----------------------------
    # Transitions
    # ----------------------------

    def signal(self, gate: Gate) -> None:
        reason = self.abort_reason
        if reason is not None:
            raise BarrierWaitAborted(f"cannot signal {gate.value}: run aborted ({reason})", reason=reason)

        idx = GATE_ORDER.index(gate)
        # Predecessor latches are monotonic, so a stale read can only be "not yet set".
        if idx > 0 and not self.is_set(GATE_ORDER[idx - 1]):
            raise PhaseOrderError(
                f"cannot signal {gate.value} before {GATE_ORDER[idx - 1].value}"
            )

        latch = self._latches[gate]
        with latch.cond:
            if latch.is_set:
                return
            # abort() may have landed since the first check
            reason = self.abort_reason
            if reason is not None:
                raise BarrierWaitAborted(f"cannot signal {gate.value}: run aborted ({reason})", reason=reason)
            latch.is_set = True
            latch.cond.notify_all()
        logger.debug("gate %s opened", gate.value)

    def await_gate(self, gate: Gate, timeout: Optional[float] = None) -> None:
        """
        Block until gate is open. timeout=None falls back to default_timeout;
        when both are None the wait is unbounded.
        """
        if timeout is None:
            timeout = self.default_timeout
        deadline = None if timeout is None else time.monotonic() + timeout

        latch = self._latches[gate]
        with latch.cond:
            while not latch.is_set:
                reason = self.abort_reason
                if reason is not None:
                    raise BarrierWaitAborted(
                        f"wait for {gate.value} aborted: {reason}", reason=reason
                    )
                if deadline is None:
                    latch.cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise BarrierTimeout(
                        f"timed out after {timeout:g}s waiting for {gate.value}",
                        reason="timeout",
                    )
                latch.cond.wait(remaining)

    def abort(self, reason: str) -> None:
        with self._state_lock:
            if self._abort_reason is not None:
                return
            self._abort_reason = str(reason) or "aborted"
        logger.warning("barrier aborted: %s", reason)
        for latch in self._latches.values():
            with latch.cond:
                latch.cond.notify_all()

    def finish(self) -> None:
        if not self.is_set(Gate.RESULT_READY):
            raise PhaseOrderError("cannot finish before result_ready")
        with self._state_lock:
            self._done = True
