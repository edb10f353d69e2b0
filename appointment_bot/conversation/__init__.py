from appointment_bot.conversation.dispatcher import MessageDispatcher, create_dispatcher
from appointment_bot.conversation.mute_registry import MuteRegistry
from appointment_bot.conversation.session_store import SessionStore
from appointment_bot.conversation.state_machine import ConversationStateMachine
from appointment_bot.conversation.transitions import InvalidTransitionError, TransitionTrigger

__all__ = [
    "ConversationStateMachine",
    "MessageDispatcher",
    "create_dispatcher",
    "SessionStore",
    "MuteRegistry",
    "TransitionTrigger",
    "InvalidTransitionError",
]
