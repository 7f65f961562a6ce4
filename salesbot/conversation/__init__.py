from salesbot.conversation.dispatcher import AdminActions, FollowUpSweeper, InboundDispatcher, InboundEvent
from salesbot.conversation.engine import ConversationEngine, EngineReply
from salesbot.conversation.history import MessageHistory
from salesbot.conversation.state_machine import infer_state
from salesbot.conversation.store import ContextStore

__all__ = [
    "ConversationEngine",
    "EngineReply",
    "ContextStore",
    "MessageHistory",
    "infer_state",
    "InboundDispatcher",
    "InboundEvent",
    "AdminActions",
    "FollowUpSweeper",
]
