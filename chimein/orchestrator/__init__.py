"""Message response orchestration.

Leaves (gate, buffer, state) are re-exported here; the chain and the
orchestrator live in ``chimein.orchestrator.chain`` and
``chimein.orchestrator.core`` because they depend on ``chimein.modes``.
"""

from chimein.orchestrator.buffer import ConversationBuffer
from chimein.orchestrator.gate import CooldownGate, CooldownState, Reservation
from chimein.orchestrator.state import AmbientState, HypeRotationState, SilenceState

__all__ = [
    "AmbientState",
    "ConversationBuffer",
    "CooldownGate",
    "CooldownState",
    "HypeRotationState",
    "Reservation",
    "SilenceState",
]
