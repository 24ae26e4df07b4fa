"""Messaging platforms.

Platform bots live in ``artfeed.messaging.telegram`` and
``artfeed.messaging.discord`` and are imported on demand, so a deployment
that only runs one platform never loads the other's client library.
"""

from artfeed.messaging.base import ChatBot, MessageSender

__all__ = [
    "ChatBot",
    "MessageSender",
]
