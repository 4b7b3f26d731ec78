from .barrier import Gate, Phase, HandshakeBarrier
from .config import ExchangeSettings, configure_logging
from .crypto_utils import (
    Identity,
    RsaKeyPairProvider,
    SeededEd25519KeyPairProvider,
    sign_document,
    verify_document,
    )
from .errors import (
    ExchangeError,
    KeyGenerationFailure,
    SignatureFailure,
    VerificationFailure,
    MalformedRequest,
    EncodingError,
    BarrierWaitAborted,
    BarrierTimeout,
    PhaseOrderError,
    DocumentLoadError,
    StoreError,
    )
from .party import ExchangePaths, ExchangeReport, Outcome, Party, Role, run_exchange
from .query_docs import build_request, parse_request, encode_rowset, decode_result, Rowset
from .store import Store, SqliteStore, StaticStore
