"""
底层工具库

- exceptions: 自定义异常层次
- resilience: 重试、退避策略
- crypto: AES 报文加解密
- signing: 公共参数与 MD5 签名
- ratelimit: Token 请求限流
- context: 进程内共享状态
"""
