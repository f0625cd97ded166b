"""
外部服务客户端

- http: httpx 封装，5xx 重试与异常分类
- bilibili: B 站私信接口
- token: 开放平台 access_token 缓存与刷新
- bot: 开放平台加密问答
"""
