"""
自定义异常层次 - 细化错误类型，便于精确处理

异常层次:
    RelayError (基类)
    ├── TransportError          - HTTP 传输失败 (重试耗尽后)
    │   ├── NetworkError        - 网络相关错误
    │   │   ├── ConnectError    - 连接失败
    │   │   └── RequestTimeout  - 超时
    │   └── APIError            - HTTP 状态码错误
    │       ├── AuthError       - 认证失败
    │       ├── RateLimitError  - 远端限流 (429)
    │       ├── BadRequestError - 请求参数错误
    │       └── ServerError     - 5xx，可重试
    ├── RateLimitExceeded       - 本地 Token 请求限流
    ├── TokenFetchFailed        - 获取 access_token 失败
    ├── BotQueryFailed          - 机器人接口返回非 0
    ├── CodecError              - 加解密/解析错误
    │   ├── KeyMaterialError    - EncodingAESKey 非法
    │   ├── DecryptError        - 密文无法解密
    │   └── ParseError          - 响应不是合法 JSON
    └── MissingCSRF             - Cookie 中缺少 CSRF
"""

from dataclasses import dataclass, field


@dataclass
class RelayError(Exception):
    """转发服务基础异常"""
    message: str
    cause: Exception | None = None
    details: dict = field(default_factory=dict)

    # 用户友好的提示
    user_hint: str = ""
    # 是否可重试
    retryable: bool = False
    # 建议等待时间 (秒)
    retry_after: float = 0

    def __str__(self):
        return self.message

    def __repr__(self):
        return f"{self.__class__.__name__}({self.message!r})"


# ==================== 传输错误 ====================

@dataclass
class TransportError(RelayError):
    """HTTP 传输失败"""


@dataclass
class NetworkError(TransportError):
    """网络相关错误"""
    user_hint: str = "网络连接异常，请检查网络状态"


@dataclass
class ConnectError(NetworkError):
    """连接失败"""
    host: str = ""
    user_hint: str = "无法建立连接"


@dataclass
class RequestTimeout(NetworkError):
    """超时错误"""
    timeout: float = 0
    operation: str = ""
    user_hint: str = "请求超时，请稍后重试"


@dataclass
class APIError(TransportError):
    """API 调用错误"""
    status_code: int = 0
    api_name: str = ""


@dataclass
class AuthError(APIError):
    """认证错误 (Cookie 失效、Token 无效等)"""
    user_hint: str = "认证失败，请检查 Cookie 或 AppID 配置"


@dataclass
class RateLimitError(APIError):
    """远端限流"""
    retry_after: float = 30
    user_hint: str = "请求过于频繁，请稍后再试"


@dataclass
class BadRequestError(APIError):
    """请求参数错误"""
    user_hint: str = "请求参数有误"


@dataclass
class ServerError(APIError):
    """服务端 5xx 错误"""
    retryable: bool = True
    user_hint: str = "远端服务暂时不可用"


# ==================== 业务错误 ====================

@dataclass
class RateLimitExceeded(RelayError):
    """本地 Token 请求限流"""
    retryable: bool = True
    user_hint: str = "Token 请求过于频繁，等待冷却结束后由下一轮重试"


@dataclass
class TokenFetchFailed(RelayError):
    """获取 access_token 失败"""
    code: int | None = None
    user_hint: str = "请检查 WX_APPID / WX_APPSECRET 配置"


@dataclass
class BotQueryFailed(RelayError):
    """机器人接口返回非 0"""
    code: int | None = None


# ==================== 编解码错误 ====================

@dataclass
class CodecError(RelayError):
    """加解密/解析错误"""


@dataclass
class KeyMaterialError(CodecError):
    """EncodingAESKey 非法"""
    user_hint: str = "ENCODING_AES_KEY 需为 43 位 base64 字符串"


@dataclass
class DecryptError(CodecError):
    """解密失败"""


@dataclass
class ParseError(CodecError):
    """JSON 解析失败"""


# ==================== 配置错误 ====================

@dataclass
class MissingCSRF(RelayError):
    """Cookie 中没有 bili_csrf / bili_jct"""
    user_hint: str = "B_COOKIES 中需要包含 bili_jct"


# ==================== 异常转换工具 ====================

def upstream_message(body) -> str:
    """从响应体中提取上游错误信息 (msg / message)"""
    if isinstance(body, dict):
        return str(body.get("msg") or body.get("message") or "")
    return ""


def classify_http_error(status_code: int, response_text: str = "", api_name: str = "", body=None) -> APIError:
    """根据 HTTP 状态码分类异常"""
    detail = upstream_message(body) or response_text
    if status_code == 401 or status_code == 403:
        return AuthError(
            message=f"认证失败: {detail or 'Unauthorized'}",
            status_code=status_code,
            api_name=api_name,
        )
    elif status_code == 429:
        return RateLimitError(
            message=f"请求限流: {detail or 'Too Many Requests'}",
            status_code=status_code,
            api_name=api_name,
        )
    elif status_code == 400:
        return BadRequestError(
            message=f"请求错误: {detail or 'Bad Request'}",
            status_code=status_code,
            api_name=api_name,
        )
    elif status_code >= 500:
        return ServerError(
            message=f"服务端错误 ({status_code}): {detail}",
            status_code=status_code,
            api_name=api_name,
        )
    else:
        return APIError(
            message=f"API 错误 ({status_code}): {detail}",
            status_code=status_code,
            api_name=api_name,
        )


def classify_network_error(error: Exception, host: str = "", operation: str = "") -> NetworkError:
    """将 httpx 底层异常转换为自定义异常"""
    import httpx

    if isinstance(error, httpx.TimeoutException):
        return RequestTimeout(
            message=f"请求超时: {operation or type(error).__name__}",
            operation=operation,
            cause=error,
        )

    if isinstance(error, httpx.ConnectError):
        return ConnectError(
            message=f"连接失败: {host or error}",
            host=host,
            cause=error,
        )

    return NetworkError(
        message=f"网络错误: {error}",
        cause=error,
    )
