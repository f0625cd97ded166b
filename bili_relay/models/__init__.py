"""
数据模型模块
"""

from bili_relay.models.bilibili import (
    UnreadCount,
    LastMsg,
    Session,
    PrivateMessage,
    UserCard,
    MyInfo,
)
from bili_relay.models.bot import TokenCache, BotQuery, BotOption, BotAnswer

__all__ = [
    "UnreadCount",
    "LastMsg",
    "Session",
    "PrivateMessage",
    "UserCard",
    "MyInfo",
    "TokenCache",
    "BotQuery",
    "BotOption",
    "BotAnswer",
]
