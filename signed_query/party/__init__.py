from .roles import (
    Role,
    Outcome,
    ExchangePaths,
    Party,
    ROLE_SCRIPTS,
    run_requester,
    run_responder,
    )
from .runner import ExchangeReport, exchange_keys, run_exchange
