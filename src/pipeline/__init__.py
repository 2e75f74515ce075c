"""
Conversation pipeline - intent recognition, slot merging and search handoff
"""
from .intent_recognizer import IntentRecognizer
from .handoff import LoggingSearchHandoff, HttpSearchHandoff, create_handoff
from .message_handler import (
    MessageHandler,
    IncomingMessage,
    TurnResult,
    TurnDecision,
    ConversationState,
    merge_slugs,
    complete_from_memory,
)
from .components import Components, build_components

__all__ = [
    'IntentRecognizer',
    'LoggingSearchHandoff',
    'HttpSearchHandoff',
    'create_handoff',
    'MessageHandler',
    'IncomingMessage',
    'TurnResult',
    'TurnDecision',
    'ConversationState',
    'merge_slugs',
    'complete_from_memory',
    'Components',
    'build_components',
]
