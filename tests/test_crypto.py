"""Tests for the AES codec and its 32-byte padding."""

import base64

import pytest
from Crypto.Cipher import AES

from bili_relay.core.crypto import CryptoCodec, derive_key, pkcs5_padding, pkcs5_unpadding
from bili_relay.core.exceptions import DecryptError, KeyMaterialError

from conftest import AES_KEY_BYTES, ENCODING_AES_KEY


@pytest.mark.parametrize("text", [
    "",
    "hello",
    '{"query":"你好","env":"online"}',
    "x" * 32,
    "中文" * 40,
])
def test_roundtrip(codec, text):
    assert codec.decrypt(codec.encrypt(text)) == text


def test_key_and_iv_derivation():
    key, iv = derive_key(ENCODING_AES_KEY)
    assert key == AES_KEY_BYTES
    assert iv == AES_KEY_BYTES[:16]


def test_ciphertext_matches_cbc_with_key_prefix_iv(codec):
    expected = AES.new(AES_KEY_BYTES, AES.MODE_CBC, AES_KEY_BYTES[:16]).encrypt(pkcs5_padding(b"abc"))
    assert base64.b64decode(codec.encrypt("abc")) == expected


def test_padding_uses_32_byte_blocks():
    padded = pkcs5_padding(b"a" * 5)
    assert len(padded) == 32
    assert padded[5:] == bytes([27]) * 27

    aligned = pkcs5_padding(b"a" * 32)
    assert len(aligned) == 64
    assert aligned[32:] == bytes([32]) * 32


@pytest.mark.parametrize("length", [1, 15, 16, 17, 31, 33, 100])
def test_unpad_restores_padded_input(length):
    data = bytes(range(length))
    assert pkcs5_unpadding(pkcs5_padding(data)) == data


@pytest.mark.parametrize("tail", [0, 33, 200])
def test_unpad_leaves_out_of_range_tail_untouched(tail):
    data = b"payload" + bytes([tail])
    assert pkcs5_unpadding(data) == data


def test_unpad_empty():
    assert pkcs5_unpadding(b"") == b""


def test_short_key_rejected():
    short = base64.b64encode(b"k" * 16).decode().rstrip("=")
    with pytest.raises(KeyMaterialError):
        CryptoCodec(short)


def test_malformed_key_rejected():
    with pytest.raises(KeyMaterialError):
        CryptoCodec("abc")


def test_decrypt_invalid_base64(codec):
    with pytest.raises(DecryptError):
        codec.decrypt("not base64!!")


def test_decrypt_wrong_block_length(codec):
    with pytest.raises(DecryptError):
        codec.decrypt(base64.b64encode(b"0123456789").decode())
