"""Field encryption seam for the remote store.

Only ``title`` and ``content`` are encrypted; mood and weather stay readable.
The cipher itself is supplied by the caller.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from ..errors import DecryptionError
from ..models import DiaryEntry

DECRYPTION_FAILED_TITLE = "⚠️ 解密失败"
DECRYPTION_FAILED_CONTENT = "无法解密此日记内容，可能是数据损坏或密钥不匹配。"

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+=*$")


def is_encrypted(text: str) -> bool:
    """Heuristic: base64-looking text longer than 20 characters is ciphertext.

    Short plaintext made only of base64 characters is misread as ciphertext;
    records written before encryption existed rely on this exact rule.
    """
    return isinstance(text, str) and len(text) > 20 and bool(_BASE64_RE.match(text))


class FieldCipher(ABC):
    @abstractmethod
    def encrypt(self, text: str, user_id: str) -> str:
        ...

    @abstractmethod
    def decrypt(self, text: str, user_id: str) -> str:
        """Return plaintext or raise :class:`DecryptionError`."""


class NullCipher(FieldCipher):
    """Stores text as-is. Used when no cipher is configured."""

    def encrypt(self, text: str, user_id: str) -> str:
        return text

    def decrypt(self, text: str, user_id: str) -> str:
        return text


def decrypt_entry(entry: DiaryEntry, cipher: FieldCipher, user_id: str) -> DiaryEntry:
    """Decrypt title and content, or return a placeholder if that fails.

    Legacy plaintext titles (not matching :func:`is_encrypted`) pass through.
    """
    if not is_encrypted(entry.title):
        return entry
    try:
        title = cipher.decrypt(entry.title, user_id)
        content = cipher.decrypt(entry.content, user_id) if is_encrypted(entry.content) else entry.content
    except (DecryptionError, ValueError, UnicodeDecodeError):
        return entry.model_copy(update={"title": DECRYPTION_FAILED_TITLE, "content": DECRYPTION_FAILED_CONTENT})
    return entry.model_copy(update={"title": title, "content": content})


__all__ = [
    "DECRYPTION_FAILED_CONTENT",
    "DECRYPTION_FAILED_TITLE",
    "FieldCipher",
    "NullCipher",
    "decrypt_entry",
    "is_encrypted",
]
