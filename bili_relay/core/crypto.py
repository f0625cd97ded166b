"""
AES-256-CBC 加解密 - 与对话机器人开放平台的报文格式保持一致

注意：
- IV 固定取密钥前 16 字节
- 填充按 32 字节分块 (PKCS#7 形式)，不是 AES 的 16 字节分块
"""

import base64
import binascii

from Crypto.Cipher import AES

from bili_relay.core.exceptions import DecryptError, KeyMaterialError

PAD_BLOCK_SIZE = 32
KEY_SIZE = 32


def pkcs5_padding(data: bytes, block_size: int = PAD_BLOCK_SIZE) -> bytes:
    """补齐到 block_size 的整数倍，每个填充字节的值都是填充长度

    已经对齐的输入会额外补一整块。
    """
    amount_to_pad = block_size - (len(data) % block_size)
    return data + bytes([amount_to_pad]) * amount_to_pad


def pkcs5_unpadding(data: bytes, block_size: int = PAD_BLOCK_SIZE) -> bytes:
    """去掉填充；末字节不在 [1, block_size] 内时原样返回"""
    if not data:
        return data
    pad = data[-1]
    if pad < 1 or pad > block_size:
        pad = 0
    return data[:len(data) - pad]


def derive_key(encoding_aes_key: str) -> tuple[bytes, bytes]:
    """由 EncodingAESKey 推导 (AES key, IV)

    Raises:
        KeyMaterialError: 解码失败或长度不是 32 字节
    """
    try:
        aes_key = base64.b64decode(encoding_aes_key + "=")
    except (binascii.Error, ValueError) as e:
        raise KeyMaterialError(message=f"encodingAESKey invalid: {e}", cause=e) from e

    if len(aes_key) != KEY_SIZE:
        raise KeyMaterialError(
            message=f"encodingAESKey invalid: 解码后长度为 {len(aes_key)} 字节，需要 {KEY_SIZE}",
        )
    return aes_key, aes_key[:16]


class CryptoCodec:
    """报文加解密

    Example:
        >>> codec = CryptoCodec(settings.bot.encoding_aes_key)
        >>> cipher_text = codec.encrypt('{"query": "你好"}')
        >>> codec.decrypt(cipher_text)
        '{"query": "你好"}'
    """

    def __init__(self, encoding_aes_key: str):
        # 构造时即校验，密钥非法在启动阶段暴露
        self.key, self.iv = derive_key(encoding_aes_key)

    def _cipher(self):
        return AES.new(self.key, AES.MODE_CBC, self.iv)

    def encrypt(self, text: str) -> str:
        """加密明文，返回 base64 密文"""
        padded = pkcs5_padding(text.encode("utf-8"))
        return base64.b64encode(self._cipher().encrypt(padded)).decode("ascii")

    def decrypt(self, text: str) -> str:
        """解密 base64 密文，返回明文

        Raises:
            DecryptError: base64 非法、密文长度不对或解出的内容不是 UTF-8
        """
        try:
            raw = base64.b64decode(text)
            deciphered = self._cipher().decrypt(raw)
            return pkcs5_unpadding(deciphered).decode("utf-8")
        except (binascii.Error, ValueError) as e:
            raise DecryptError(message=f"解密失败: {e}", cause=e) from e
