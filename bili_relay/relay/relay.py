"""
私信转发 - 未读检查 → 会话筛选 → 拉取消息 → 机器人问答 → 回复

一轮轮询内的网络请求按顺序 await，只有最后对每条消息的问答
是并发派发的：不等上一条的回复完成就派发下一条，回复顺序不保证，
任何一条失败都会停止轮询 (其余已派发的照常完成)。
"""

import asyncio
import json
import time

from bili_relay.adapters.bilibili import BilibiliClient
from bili_relay.adapters.bot import BotClient
from bili_relay.core.context import AppContext
from bili_relay.core.exceptions import ParseError, RelayError
from bili_relay.models.bilibili import MyInfo, PrivateMessage, Session, UnreadCount, UserCard
from bili_relay.models.bot import BotQuery
from bili_relay.utils.logger import log, log_error


def filter_eligible(sessions: list[Session]) -> list[Session]:
    """只保留普通用户发来、有未读文字消息的会话"""
    return [session for session in sessions if session.is_eligible]


class MessageRelay:

    def __init__(self, ctx: AppContext, bilibili: BilibiliClient, bot: BotClient):
        self.ctx = ctx
        self.bilibili = bilibili
        self.bot = bot
        self._dispatches: set[asyncio.Task] = set()

    # ==================== 启动 ====================

    async def start(self) -> bool:
        """获取当前账号信息，成功后启动轮询

        Returns:
            是否已启动轮询；接口返回非 0 时不启动
        """
        try:
            res = await self.bilibili.get_my_info()
        except RelayError as e:
            self.ctx.stop_polling(error=e)
            raise

        if res.get("code") != 0:
            log.error(f"我的信息报错: {json.dumps(res, ensure_ascii=False)}")
            return False

        self.ctx.my_info = MyInfo.from_dict(res.get("data") or {})
        log.success(f"👤 当前账号: {self.ctx.my_info.uname} ({self.ctx.my_info.mid})")
        self.ctx.poller.start()
        return True

    # ==================== 轮询 ====================

    async def poll_once(self):
        """轮询回调"""
        self.ctx.stats.record_tick()
        await self.fetch_unread()

    async def fetch_unread(self) -> UnreadCount | None:
        res = await self.bilibili.get_unread()
        if res.get("code") != 0:
            log.warning(f"未读私信接口报错: {json.dumps(res, ensure_ascii=False)}")
            return None

        unread = UnreadCount.from_dict(res.get("data") or {})
        log.info(f"📬 未读私信: 已关注 {unread.follow_unread}, 未关注 {unread.unfollow_unread}")
        if unread.total > 0:
            await self.fetch_session_details(int(time.time()))
        return unread

    async def fetch_session_details(self, since_ts: int) -> list[Session]:
        """拉取 since_ts 之后的会话，逐个处理符合条件的会话"""
        try:
            res = await self.bilibili.get_new_sessions(since_ts)
            if res.get("code") != 0:
                log.warning(f"会话列表接口报错: {json.dumps(res, ensure_ascii=False)}")
                return []

            session_list = (res.get("data") or {}).get("session_list") or []
            eligible = filter_eligible([Session.from_dict(item) for item in session_list])
            log.debug(f"会话 {len(session_list)} 个，待处理 {len(eligible)} 个")

            for session in eligible:
                await self.fetch_message_content(session)
            return eligible
        except RelayError as e:
            self.ctx.stop_polling(error=e)
            raise

    async def fetch_message_content(self, session: Session) -> list[asyncio.Task]:
        """拉取会话的未读消息并派发给机器人，返回派发出的任务"""
        try:
            card = await self._fetch_user_card(session.talker_id)

            res = await self.bilibili.fetch_session_msgs(session.talker_id, session.unread_count)
            if res.get("code") != 0:
                log.warning(f"私信内容接口报错: {json.dumps(res, ensure_ascii=False)}")
                return []

            dispatched = []
            for item in (res.get("data") or {}).get("messages") or []:
                message = PrivateMessage.from_dict(item)
                if not message.content or self._is_own(message):
                    continue

                try:
                    text = message.text()
                except json.JSONDecodeError as e:
                    raise ParseError(message=f"私信内容不是 JSON: {message.content[:100]}", cause=e) from e
                if text is None:
                    log.debug(f"[{session.talker_id}] 跳过非文字消息: {message.content[:50]}")
                    continue

                log.info(f"💬 [{card.uname}({session.talker_id})] {text}")
                dispatched.append(self.dispatch(BotQuery(
                    query=text,
                    user_name=card.uname,
                    avatar=card.face,
                    userid=session.talker_id,
                )))
            return dispatched
        except RelayError as e:
            self.ctx.stop_polling(error=e)
            raise

    async def _fetch_user_card(self, uid: int) -> UserCard:
        """昵称和头像只是附加信息，获取失败不影响处理"""
        try:
            return await self.bilibili.get_user_card(uid)
        except Exception as e:
            log.warning(f"获取用户 {uid} 信息失败，使用默认昵称: {e}")
            return UserCard()

    def _is_own(self, message: PrivateMessage) -> bool:
        my_info = self.ctx.my_info
        return my_info is not None and message.sender_uid is not None and str(message.sender_uid) == str(my_info.mid)

    # ==================== 派发 ====================

    def dispatch(self, query: BotQuery) -> asyncio.Task:
        """派发问答任务，不等待完成"""
        task = asyncio.create_task(self.bot.query(query))
        self._dispatches.add(task)
        task.add_done_callback(self._on_dispatch_done)
        self.ctx.stats.record_message()
        return task

    def _on_dispatch_done(self, task: asyncio.Task):
        self._dispatches.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log_error(error, context="机器人问答")

    @property
    def pending(self) -> int:
        return len(self._dispatches)

    async def drain(self):
        """等待所有已派发的问答结束"""
        if self._dispatches:
            await asyncio.gather(*self._dispatches, return_exceptions=True)
