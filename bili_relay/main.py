"""
B 站私信自动回复 - 主程序

轮询未读私信，经对话机器人开放平台问答后把答案回复给发送者。
"""

import asyncio
import os

from bili_relay.adapters.bilibili import BilibiliClient
from bili_relay.adapters.bot import BotClient
from bili_relay.adapters.http import HttpClient
from bili_relay.adapters.token import TokenManager
from bili_relay.core.context import AppContext
from bili_relay.core.crypto import CryptoCodec
from bili_relay.core.signing import SignedRequestBuilder
from bili_relay.relay import MessageRelay, Poller
from bili_relay.utils.config import load_settings
from bili_relay.utils.env_loader import EnvLoader
from bili_relay.utils.logger import setup_logger, log, log_error


def build_relay(ctx: AppContext, transport=None) -> MessageRelay:
    """组装各组件，并把轮询器注册到上下文"""
    settings = ctx.settings

    # 密钥非法时在这里直接失败
    codec = CryptoCodec(settings.bot.encoding_aes_key)
    signer = SignedRequestBuilder(settings.bot.app_id, settings.bot.app_secret)

    bot_http = HttpClient(
        settings.bot.base_url,
        timeout=settings.relay.http_timeout,
        retries=settings.relay.http_retries,
        transport=transport,
        name="bot-service",
    )
    bilibili = BilibiliClient.from_settings(ctx, transport=transport)
    tokens = TokenManager(ctx, bot_http, signer)
    bot = BotClient(ctx, bot_http, tokens, codec, signer, bilibili)

    relay = MessageRelay(ctx, bilibili, bot)
    ctx.poller = Poller(relay.poll_once, interval=settings.relay.poll_interval)
    return relay


async def shutdown(ctx: AppContext, relay: MessageRelay):
    ctx.stop_polling()
    if ctx.poller:
        await ctx.poller.wait_idle()
    await relay.drain()
    await relay.bilibili.close()
    await relay.bot.http.close()


async def main():
    settings = load_settings()
    setup_logger(level=settings.log_level, log_file=settings.log_file)

    log.info("=" * 60)
    log.info("Bilibili 私信自动回复 Starting...")
    log.info("=" * 60)
    log.info(f"Log Level: {settings.log_level}")
    log.info(f"Bot Service: {settings.bot.base_url}")
    log.info(f"Poll Interval: {settings.relay.poll_interval:g}s")

    ctx = AppContext(settings)
    relay = build_relay(ctx)

    # .env 热加载：只更新 Cookie，回到事件循环线程里修改
    loop = asyncio.get_running_loop()
    env_loader = EnvLoader()

    def on_env_reload():
        cookies = os.getenv("B_COOKIES", "")
        if cookies and cookies != relay.bilibili.cookies:
            loop.call_soon_threadsafe(relay.bilibili.update_cookies, cookies)

    env_loader.add_callback(on_env_reload)
    env_loader.start()

    try:
        if await relay.start():
            log.info("Press Ctrl+C to stop")
            while ctx.is_polling:
                await asyncio.sleep(1)
    except Exception as e:
        log_error(e, context="启动", show_traceback=True)
        raise
    finally:
        await shutdown(ctx, relay)
        env_loader.stop()
        log.info(f"Relay stopped, status: {ctx.get_status_summary()}")


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
