"""对话机器人开放平台数据结构"""

from dataclasses import dataclass, field

from bili_relay.core.exceptions import ParseError


@dataclass
class TokenCache:
    """access_token 缓存，expiry 为毫秒时间戳"""
    value: str | None = None
    expiry: float = 0

    def is_valid(self, now_ms: float) -> bool:
        return bool(self.value) and self.expiry > now_ms

    def invalidate(self):
        self.value = None


@dataclass
class BotQuery:
    """问答请求

    Attributes:
        query: 用户发送的消息
        user_name: 用户昵称
        avatar: 用户头像
        userid: 用户 ID
        env: online 为线上环境，debug 为测试环境
        first_priority_skills: 限定命中的技能范围
        second_priority_skills: 优先级低于 first_priority_skills 的技能范围
    """
    query: str
    user_name: str = ""
    avatar: str = ""
    userid: int | str = ""
    env: str = "online"
    first_priority_skills: list[str] = field(default_factory=list)
    second_priority_skills: list[str] = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "env": self.env,
            "first_priority_skills": list(self.first_priority_skills),
            "second_priority_skills": list(self.second_priority_skills),
            "query": self.query,
            "user_name": self.user_name,
            "avatar": self.avatar,
            "userid": self.userid,
        }


def _text(value) -> str:
    """null 视为空串，其他标量转成字符串"""
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ParseError(message=f"问答响应字段不是文本: {value!r:.100}")
    return str(value)


@dataclass
class BotOption:
    title: str = ""
    answer: str = ""

    @classmethod
    def from_dict(cls, data) -> "BotOption":
        if not isinstance(data, dict):
            raise ParseError(message=f"问答选项格式错误: {data!r:.100}")
        return cls(title=_text(data.get("title")), answer=_text(data.get("answer")))


@dataclass
class BotAnswer:
    intent_name: str = ""
    answer: str = ""
    options: list[BotOption] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data) -> "BotAnswer":
        """
        Raises:
            ParseError: data 或 options 结构不对
        """
        if not isinstance(data, dict):
            raise ParseError(message=f"问答响应 data 格式错误: {data!r:.100}")
        options = data.get("options") or []
        if not isinstance(options, list):
            raise ParseError(message=f"问答响应 options 不是列表: {options!r:.100}")
        return cls(
            intent_name=_text(data.get("intent_name")),
            answer=_text(data.get("answer")),
            options=[BotOption.from_dict(item) for item in options],
        )

    def to_reply_text(self) -> str:
        """拼接回复: 意图名、答案，再逐个追加选项标题与答案"""
        parts = [self.intent_name or "", self.answer or ""]
        for option in self.options:
            parts.extend([option.title or "", option.answer or ""])
        return "\n".join(parts)
