"""
access_token 管理 - 缓存、限流、刷新

缓存有效时直接返回；否则先消耗一个限流点，再签名请求 /v2/token。
任何失败都会清空缓存，不在这里重试，由下一轮轮询再试。
"""

import time
from typing import Callable

from bili_relay.adapters.http import HttpClient
from bili_relay.core.context import AppContext
from bili_relay.core.exceptions import RelayError, TokenFetchFailed
from bili_relay.core.signing import SignedRequestBuilder
from bili_relay.utils.logger import log

TOKEN_PATH = "/v2/token"
# 提前 5 秒视为过期
EXPIRY_MARGIN_MS = 5000


def _now_ms() -> float:
    return time.time() * 1000


class TokenManager:

    def __init__(
        self,
        ctx: AppContext,
        http: HttpClient,
        signer: SignedRequestBuilder,
        clock: Callable[[], float] = _now_ms,
    ):
        self.ctx = ctx
        self.http = http
        self.signer = signer
        self.clock = clock

    async def get_valid_token(self) -> str:
        """获取有效 Token (带缓存和自动刷新)

        Raises:
            RateLimitExceeded: 刷新过于频繁
            TokenFetchFailed: 接口返回非 0 或请求失败
        """
        now = self.clock()
        cache = self.ctx.token_cache

        if cache.is_valid(now):
            return cache.value

        # 限流失败直接抛出，不影响缓存
        self.ctx.rate_limiter.consume(1)

        body = "{}"
        try:
            res = await self.http.post_json(
                TOKEN_PATH,
                content=body,
                headers=self.signer.build_headers(body),
            )
        except RelayError as e:
            cache.invalidate()
            raise TokenFetchFailed(message=f"Token获取失败: {e}", cause=e) from e

        if isinstance(res, dict) and res.get("code") == 0:
            token = (res.get("data") or {}).get("access_token")
            if token:
                cache.value = token
                cache.expiry = now + (self.ctx.settings.bot.cache_expiry - EXPIRY_MARGIN_MS)
                log.info("🔑 access_token 已刷新")
                return token

        cache.invalidate()
        msg = res.get("msg") if isinstance(res, dict) else None
        raise TokenFetchFailed(
            message=f"获取Token失败: {msg or '未知错误'}",
            code=res.get("code") if isinstance(res, dict) else None,
            details={"response": res},
        )
