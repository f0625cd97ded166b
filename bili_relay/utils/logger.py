"""Logging configuration using loguru + 人性化错误格式化"""

import sys
import traceback

from loguru import logger


def setup_logger(level: str = "INFO", log_file: str | None = None):
    """Configure loguru logger

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path for log output
    """
    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> <level>{message}</level>",
        colorize=True,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="10 MB",
            retention="7 days",
        )

    return logger


# Default logger instance
log = logger


# ==================== 人性化错误格式化 ====================

ERROR_ICONS = {
    "NetworkError": "🌐",
    "ConnectError": "🔌",
    "RequestTimeout": "⏱️",
    "APIError": "📡",
    "ServerError": "📡",
    "RateLimitError": "🚦",
    "RateLimitExceeded": "🚦",
    "AuthError": "🔑",
    "TokenFetchFailed": "🔑",
    "BotQueryFailed": "🤖",
    "KeyMaterialError": "🔐",
    "DecryptError": "🔐",
    "ParseError": "🧩",
    "MissingCSRF": "🍪",
}


def format_error(
    error: Exception,
    context: str = "",
    show_traceback: bool = False,
) -> str:
    """
    格式化错误为人性化的日志消息

    Args:
        error: 异常对象
        context: 错误发生的上下文描述
        show_traceback: 是否显示完整堆栈

    Returns:
        格式化的错误消息

    Example:
        >>> log.error(format_error(e, context="获取 Token"))
        🚦 获取 Token失败 [RateLimitExceeded]
           → 原因: Token 请求过于频繁
           → 建议: 等待冷却结束后重试
    """
    from bili_relay.core.exceptions import RelayError

    error_type = type(error).__name__
    icon = ERROR_ICONS.get(error_type, "❌")

    lines = []

    title = f"{icon} {context}失败" if context else f"{icon} 错误"
    lines.append(f"{title} [{error_type}]")
    lines.append(f"   → 原因: {error}")

    if isinstance(error, RelayError):
        if error.user_hint:
            lines.append(f"   → 建议: {error.user_hint}")
        if error.retry_after > 0:
            lines.append(f"   → 重试: {error.retry_after:.0f}s 后")
        if error.cause:
            lines.append(f"   → 底层: {type(error.cause).__name__}: {error.cause}")

    if show_traceback:
        tb = traceback.format_exc()
        tb_lines = tb.strip().split("\n")
        if len(tb_lines) > 6:
            tb_lines = ["   ..."] + tb_lines[-5:]
        lines.append("   → 堆栈:")
        for tb_line in tb_lines:
            lines.append(f"      {tb_line}")

    return "\n".join(lines)


def log_error(
    error: Exception,
    context: str = "",
    show_traceback: bool = False,
):
    """记录格式化的错误日志"""
    log.error(format_error(error, context, show_traceback))


def log_retry(
    error: Exception,
    attempt: int,
    max_attempts: int,
    delay: float,
    context: str = "",
):
    """记录重试日志"""
    error_type = type(error).__name__

    log.warning(
        f"🔄 重试 {context} ({attempt}/{max_attempts})\n"
        f"   → 原因: [{error_type}] {error}\n"
        f"   → 等待: {delay:.1f}s"
    )


def log_poller_status(status: str, interval: float = 0, error: Exception | None = None):
    """
    记录轮询器状态日志

    Args:
        status: started, stopped, failed
        interval: 轮询间隔 (秒)
        error: 导致停止的错误
    """
    if status == "started":
        log.success(f"⏱️ 轮询已启动，间隔 {interval:g}s")
    elif status == "stopped":
        log.warning("⏹️ 轮询已停止")
    elif status == "failed":
        log.error(f"❌ 轮询失败，已自动停止\n   → 错误: {error}")
