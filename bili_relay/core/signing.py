"""
请求签名 - 公共参数生成与 MD5 签名

sign = md5(app_secret + timestamp + nonce + md5(body))
"""

import hashlib
import os
import time
import uuid
from dataclasses import dataclass


def md5_hex(text: str) -> str:
    """utf-8 编码后取 MD5，返回小写十六进制"""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CommonParams:
    """每次请求独立生成的公共参数"""
    timestamp: int
    nonce: str
    request_id: str


def generate_common_params() -> CommonParams:
    return CommonParams(
        timestamp=int(time.time()),
        nonce=os.urandom(16).hex()[:10],
        request_id=str(uuid.uuid4()),
    )


def generate_signature(app_secret: str, timestamp: int | str, nonce: str, body_md5: str) -> str:
    return md5_hex(f"{app_secret}{timestamp}{nonce}{body_md5}")


class SignedRequestBuilder:
    """为开放平台请求生成签名头"""

    def __init__(self, app_id: str, app_secret: str):
        self.app_id = app_id
        self.app_secret = app_secret

    def sign(self, body: str, params: CommonParams) -> str:
        return generate_signature(self.app_secret, params.timestamp, params.nonce, md5_hex(body))

    def build_headers(
        self,
        body: str,
        content_type: str = "application/json",
        token: str | None = None,
        params: CommonParams | None = None,
    ) -> dict[str, str]:
        """生成带签名的请求头

        Args:
            body: 实际发送的请求体原文 (Token 请求为 "{}"，问答请求为密文)
            content_type: Content-Type
            token: access_token，问答接口需要
            params: 指定公共参数 (测试用)，默认重新生成
        """
        params = params or generate_common_params()
        headers = {
            "X-APPID": self.app_id,
            "request_id": params.request_id,
            "timestamp": str(params.timestamp),
            "nonce": params.nonce,
            "sign": self.sign(body, params),
            "Content-Type": content_type,
        }
        if token is not None:
            headers["X-OPENAI-TOKEN"] = token
        return headers
