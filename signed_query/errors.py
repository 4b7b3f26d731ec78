"""
Exception taxonomy for a query exchange run.

Everything raised on purpose by this package derives from ExchangeError so a
party script can turn it into a terminal Outcome. Validation-style errors
also derive from ValueError, matching how the rest of the tooling reports
bad input.
"""

from __future__ import annotations


class ExchangeError(Exception):
    """Base class for all exchange failures."""


class KeyGenerationFailure(ExchangeError):
    pass


class SignatureFailure(ExchangeError):
    pass


class VerificationFailure(ExchangeError):
    # Expected, data-dependent. verify_document() returns False instead of
    # raising; party scripts raise this to report a rejection.
    pass


class MalformedRequest(ExchangeError, ValueError):
    pass


class EncodingError(ExchangeError, ValueError):
    pass


class DocumentLoadError(ExchangeError, ValueError):
    pass


class StoreError(ExchangeError):
    pass


class PhaseOrderError(ExchangeError, RuntimeError):
    pass


class BarrierWaitAborted(ExchangeError):
    def __init__(self, message: str, *, reason: str | None = None):
        super().__init__(message)
        self.reason = reason


class BarrierTimeout(BarrierWaitAborted):
    pass
