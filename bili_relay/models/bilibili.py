"""B 站私信相关数据结构"""

import json
from dataclasses import dataclass, field
from typing import Any

# 私信会话类型: 1 = 用户私聊
SESSION_TYPE_USER = 1
# 消息类型: 1 = 文字
MSG_TYPE_TEXT = 1
# system_msg_type: 0 = 用户发送的消息
SYSTEM_MSG_TYPE_USER = 0

UNKNOWN_USER_NAME = "未知用户"


@dataclass
class UnreadCount:
    follow_unread: int = 0
    unfollow_unread: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "UnreadCount":
        return cls(
            follow_unread=data.get("follow_unread", 0) or 0,
            unfollow_unread=data.get("unfollow_unread", 0) or 0,
        )

    @property
    def total(self) -> int:
        return self.follow_unread + self.unfollow_unread


@dataclass
class LastMsg:
    msg_type: int | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "LastMsg | None":
        if not data:
            return None
        return cls(msg_type=data.get("msg_type"))


@dataclass
class Session:
    """私信会话"""

    talker_id: int
    unread_count: int = 0
    last_msg: LastMsg | None = None
    session_type: int | None = None
    system_msg_type: int | None = None
    # 官方号/企业号才有
    account_info: dict | None = None

    raw: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            talker_id=data.get("talker_id", 0),
            unread_count=data.get("unread_count", 0) or 0,
            last_msg=LastMsg.from_dict(data.get("last_msg")),
            session_type=data.get("session_type"),
            system_msg_type=data.get("system_msg_type"),
            account_info=data.get("account_info") or None,
            raw=data,
        )

    @property
    def is_eligible(self) -> bool:
        """是否是有未读文字消息的普通用户私聊"""
        return (
            not self.account_info
            and self.last_msg is not None
            and self.last_msg.msg_type == MSG_TYPE_TEXT
            and self.session_type == SESSION_TYPE_USER
            and self.system_msg_type == SYSTEM_MSG_TYPE_USER
            and self.unread_count > 0
        )


@dataclass
class PrivateMessage:
    """会话中的单条消息"""

    sender_uid: int | None = None
    msg_type: int | None = None
    content: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "PrivateMessage":
        return cls(
            sender_uid=data.get("sender_uid"),
            msg_type=data.get("msg_type"),
            content=data.get("content") or "",
        )

    def text(self) -> str | None:
        """解出文字内容

        content 字段本身是 JSON 字符串，如 '{"content":"你好"}'。

        Raises:
            json.JSONDecodeError: content 不是合法 JSON
        """
        payload = json.loads(self.content)
        if isinstance(payload, dict):
            text = payload.get("content")
            if isinstance(text, str) and text:
                return text
        return None


@dataclass
class UserCard:
    """直播站公开的用户名片"""
    uname: str = UNKNOWN_USER_NAME
    face: str = ""


@dataclass
class MyInfo:
    """当前登录账号 (回复的发送者)"""

    mid: int | str = ""
    uname: str = ""
    userid: str = ""
    sign: str = ""
    birthday: str = ""
    sex: str = ""
    nick_free: bool = False
    rank: str = ""

    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict) -> "MyInfo":
        return cls(
            mid=data.get("mid", ""),
            uname=data.get("uname", ""),
            userid=data.get("userid", ""),
            sign=data.get("sign", ""),
            birthday=data.get("birthday", ""),
            sex=data.get("sex", ""),
            nick_free=bool(data.get("nick_free", False)),
            rank=str(data.get("rank", "")),
            raw=data,
        )
