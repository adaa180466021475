from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import algorithms
from cryptography.hazmat.primitives.ciphers import Cipher
from cryptography.hazmat.primitives.ciphers import modes
from objectstorage_client.interfaces import ITransform
from zope.interface import implementer

import zlib


# zlib wbits selecting the gzip container
_GZIP_WBITS = 16 + zlib.MAX_WBITS


@implementer(ITransform)
class GzipCompressor:
    def __init__(self, level=9):
        self._z = zlib.compressobj(level, zlib.DEFLATED, _GZIP_WBITS)

    def update(self, data):
        return self._z.compress(data)

    def finalize(self):
        return self._z.flush()


@implementer(ITransform)
class GzipDecompressor:
    def __init__(self):
        self._z = zlib.decompressobj(_GZIP_WBITS)

    def update(self, data):
        return self._z.decompress(data)

    def finalize(self):
        tail = self._z.flush()
        if not self._z.eof:
            raise zlib.error("Incomplete gzip stream")
        return tail


def _check_aes_params(key, iv):
    if len(key) != 32:
        raise ValueError(f"AES-256 key must be 32 bytes, got {len(key)}")
    if len(iv) != 16:
        raise ValueError(f"AES-CBC IV must be 16 bytes, got {len(iv)}")


@implementer(ITransform)
class AESCBCEncryptor:
    """AES-256-CBC encryption with PKCS7 padding."""

    def __init__(self, key, iv):
        _check_aes_params(key, iv)
        self._cipher = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        self._padder = padding.PKCS7(algorithms.AES.block_size).padder()

    def update(self, data):
        return self._cipher.update(self._padder.update(data))

    def finalize(self):
        return self._cipher.update(self._padder.finalize()) + self._cipher.finalize()


@implementer(ITransform)
class AESCBCDecryptor:
    """Inverse of AESCBCEncryptor."""

    def __init__(self, key, iv):
        _check_aes_params(key, iv)
        self._cipher = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        self._unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()

    def update(self, data):
        return self._unpadder.update(self._cipher.update(data))

    def finalize(self):
        return self._unpadder.update(self._cipher.finalize()) + self._unpadder.finalize()


def gzip_transforms(level=9):
    """Return a (forward, reverse) factory pair for gzip compression."""
    return (lambda: GzipCompressor(level)), GzipDecompressor


def aes_cbc_transforms(key, iv):
    """Return a (forward, reverse) factory pair for AES-256-CBC encryption."""
    _check_aes_params(key, iv)
    return (lambda: AESCBCEncryptor(key, iv)), (lambda: AESCBCDecryptor(key, iv))
