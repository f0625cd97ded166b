"""Bilibili 私信自动回复：轮询私信，经对话机器人开放平台问答后回复"""

__version__ = "0.1.0"
