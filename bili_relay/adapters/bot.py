"""
对话机器人开放平台客户端

请求体: JSON → AES 加密 → base64 密文 (text/plain)
响应体: base64 密文 → 解密 → JSON
"""

import json

from bili_relay.adapters.bilibili import BilibiliClient
from bili_relay.adapters.http import HttpClient
from bili_relay.adapters.token import TokenManager
from bili_relay.core.context import AppContext
from bili_relay.core.crypto import CryptoCodec
from bili_relay.core.exceptions import BotQueryFailed, ParseError
from bili_relay.core.signing import SignedRequestBuilder
from bili_relay.models.bot import BotAnswer, BotQuery
from bili_relay.utils.logger import log

QUERY_PATH = "/v2/bot/query"


def dumps_compact(data) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


class BotClient:
    """问答并把答案回复给私信发送者"""

    def __init__(
        self,
        ctx: AppContext,
        http: HttpClient,
        tokens: TokenManager,
        codec: CryptoCodec,
        signer: SignedRequestBuilder,
        bilibili: BilibiliClient,
    ):
        self.ctx = ctx
        self.http = http
        self.tokens = tokens
        self.codec = codec
        self.signer = signer
        self.bilibili = bilibili

    async def ask(self, request: BotQuery) -> BotAnswer:
        """加密请求问答接口并解析答案

        Raises:
            TokenFetchFailed / RateLimitExceeded: Token 不可用
            TransportError: 请求失败
            DecryptError / ParseError: 响应无法解密或解析
            BotQueryFailed: 响应 code 非 0
        """
        token = await self.tokens.get_valid_token()

        cipher_text = self.codec.encrypt(dumps_compact(request.to_payload()))
        headers = self.signer.build_headers(cipher_text, content_type="text/plain", token=token)
        body = await self.http.post_text(QUERY_PATH, content=cipher_text, headers=headers)

        plain = self.codec.decrypt(body)
        try:
            res = json.loads(plain)
        except json.JSONDecodeError as e:
            raise ParseError(message=f"问答响应不是 JSON: {plain[:100]}", cause=e) from e
        if not isinstance(res, dict):
            raise ParseError(message=f"问答响应格式错误: {plain[:100]}")

        if res.get("code") != 0:
            raise BotQueryFailed(
                message=f"问答接口报错: {res.get('msg') or res.get('code')}",
                code=res.get("code"),
                details={"response": res},
            )
        return BotAnswer.from_dict(res.get("data") or {})

    async def query(self, request: BotQuery) -> BotAnswer:
        """问答 → 回复私信；任何失败都会停止轮询并重新抛出"""
        try:
            answer = await self.ask(request)
            log.info(f"🤖 [{request.userid}] {request.query[:30]} → {answer.intent_name}")
            await self.bilibili.send_message(request.userid, answer.to_reply_text())
            return answer
        except Exception as e:
            self.ctx.stop_polling(error=e)
            raise
