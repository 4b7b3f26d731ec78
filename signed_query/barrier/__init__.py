from .phases import (
    Gate,
    Phase,
    GATE_ORDER,
    HandshakeBarrier,
    )
