"""
B 站私信接口客户端

所有请求都带固定的浏览器 UA 和配置的 Cookie (直播站名片接口除外，它不需要鉴权)。
"""

import json
import uuid
from urllib.parse import unquote

import httpx

from bili_relay.adapters.http import HttpClient
from bili_relay.core.context import AppContext
from bili_relay.core.exceptions import MissingCSRF
from bili_relay.core.signing import generate_common_params
from bili_relay.models.bilibili import MSG_TYPE_TEXT, SESSION_TYPE_USER, UNKNOWN_USER_NAME, UserCard
from bili_relay.utils.logger import log

UNREAD_PATH = "/session_svr/v1/session_svr/single_unread"
NEW_SESSIONS_PATH = "/session_svr/v1/session_svr/new_sessions"
FETCH_SESSION_MSGS_PATH = "/svr_sync/v1/svr_sync/fetch_session_msgs"
SEND_MSG_PATH = "/web_im/v1/web_im/send_msg"
# api.live.bilibili.com
USER_CARD_PATH = "/live_user/v1/Master/info"
# api.bilibili.com
MY_INFO_PATH = "/x/member/web/account"

ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
# 按优先级排列
CSRF_COOKIE_NAMES = ("bili_csrf", "bili_jct")


def parse_cookies(cookies: str) -> dict[str, str]:
    """解析 Cookie 原文为 {name: value}，同名时保留第一个"""
    result: dict[str, str] = {}
    for item in cookies.split(";"):
        name, sep, value = item.strip().partition("=")
        if sep and name and name not in result:
            result[name] = unquote(value)
    return result


def extract_csrf(cookies: str) -> str:
    """从 Cookie 中取 CSRF，优先 bili_csrf，其次 bili_jct

    Raises:
        MissingCSRF: 两者都不存在
    """
    parsed = parse_cookies(cookies)
    for name in CSRF_COOKIE_NAMES:
        if parsed.get(name):
            return parsed[name]
    raise MissingCSRF(message="Cookie 中没有 bili_csrf 或 bili_jct")


class BilibiliClient:

    def __init__(
        self,
        ctx: AppContext,
        vc: HttpClient,
        live: HttpClient,
        main: HttpClient,
    ):
        self.ctx = ctx
        self.vc = vc
        self.live = live
        self.main = main
        self._cookies = ctx.settings.bilibili.cookies

    @classmethod
    def from_settings(cls, ctx: AppContext, transport: httpx.AsyncBaseTransport | None = None) -> "BilibiliClient":
        """按配置创建三个站点的 HttpClient"""
        cfg = ctx.settings.bilibili
        relay = ctx.settings.relay

        def client(base_url: str, name: str) -> HttpClient:
            return HttpClient(
                base_url,
                timeout=relay.http_timeout,
                retries=relay.http_retries,
                transport=transport,
                name=name,
            )

        return cls(
            ctx,
            vc=client(cfg.api_base_url, "bilibili-vc"),
            live=client(cfg.live_api_base_url, "bilibili-live"),
            main=client(cfg.main_api_base_url, "bilibili"),
        )

    async def close(self):
        for http in (self.vc, self.live, self.main):
            await http.close()
        log.info("Bilibili clients closed")

    # ==================== Cookie ====================

    @property
    def cookies(self) -> str:
        return self._cookies

    def update_cookies(self, cookies: str):
        """替换 Cookie (.env 热加载后调用)"""
        self._cookies = cookies
        log.info("🍪 Bilibili Cookie 已更新")

    def _headers(self, with_cookie: bool = True) -> dict[str, str]:
        headers = {
            "User-Agent": self.ctx.settings.bilibili.user_agent,
            "Accept": ACCEPT,
        }
        if with_cookie:
            headers["Cookie"] = self._cookies
        return headers

    # ==================== 查询接口 ====================

    async def get_unread(self) -> dict:
        """未读私信数 {code, data: {follow_unread, unfollow_unread}}"""
        return await self.vc.get_json(UNREAD_PATH, headers=self._headers())

    async def get_new_sessions(self, begin_ts: int) -> dict:
        """begin_ts 之后有更新的会话 {code, data: {session_list}}"""
        params = {"begin_ts": begin_ts, "build": 0, "mobi_app": "web"}
        return await self.vc.get_json(NEW_SESSIONS_PATH, params=params, headers=self._headers())

    async def fetch_session_msgs(self, talker_id: int, size: int) -> dict:
        """会话中最近 size 条消息 {code, data: {messages}}"""
        params = {"talker_id": talker_id, "session_type": SESSION_TYPE_USER, "size": size}
        return await self.vc.get_json(FETCH_SESSION_MSGS_PATH, params=params, headers=self._headers())

    async def get_user_card(self, uid: int) -> UserCard:
        """通过直播站接口获取用户昵称和头像 (无需鉴权)

        Raises:
            RelayError: 请求失败
        """
        res = await self.live.get_json(USER_CARD_PATH, params={"uid": uid}, headers=self._headers(with_cookie=False))
        if res.get("code") != 0:
            return UserCard()
        info = (res.get("data") or {}).get("info") or {}
        return UserCard(uname=info.get("uname") or UNKNOWN_USER_NAME, face=info.get("face") or "")

    async def get_my_info(self) -> dict:
        """当前账号信息 {code, data: {mid, uname, ...}}"""
        return await self.main.get_json(MY_INFO_PATH, headers=self._headers())

    # ==================== 发送 ====================

    async def send_message(self, receiver_id: int | str, text: str) -> bool:
        """发送文字私信

        返回 code 非 0 时只记录日志并返回 False；
        请求失败或缺少 CSRF 时停止轮询并重新抛出。
        """
        try:
            csrf = extract_csrf(self._cookies)
            params = generate_common_params()
            sender_uid = self.ctx.my_info.mid if self.ctx.my_info else ""
            form = {
                "msg[sender_uid]": str(sender_uid),
                "msg[receiver_id]": str(receiver_id),
                "msg[receiver_type]": "1",
                "msg[msg_type]": str(MSG_TYPE_TEXT),
                "msg[msg_status]": "0",
                "msg[dev_id]": str(uuid.uuid4()),
                "msg[timestamp]": str(params.timestamp),
                "msg[new_face_version]": "1",
                "msg[content]": json.dumps({"content": text}, ensure_ascii=False, separators=(",", ":")),
                "csrf_token": csrf,
                "csrf": csrf,
                "build": "0",
                "mobi_app": "web",
            }
            headers = self._headers()
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            res = await self.vc.post_json(SEND_MSG_PATH, data=form, headers=headers)
        except Exception as e:
            self.ctx.stop_polling(error=e)
            raise

        if res.get("code") == 0:
            self.ctx.stats.record_reply()
            log.success(f"✉️ 已回复 {receiver_id}")
            return True

        log.warning(f"接口报错信息：{json.dumps(res, ensure_ascii=False)}")
        return False
