"""Diary storage: local replica, remote document store and the hybrid engine."""

from .backends import DocumentBackend, FirestoreBackend, InMemoryDocumentBackend
from .crypto import FieldCipher, NullCipher, is_encrypted
from .hybrid import HybridDiaryStore
from .identity import IdentityProvider, LocalIdentity
from .local import LocalDiaryStore
from .merge import content_signature, merge_entries
from .remote import RemoteDiaryStore

__all__ = [
    "DocumentBackend",
    "FieldCipher",
    "FirestoreBackend",
    "HybridDiaryStore",
    "IdentityProvider",
    "InMemoryDocumentBackend",
    "LocalDiaryStore",
    "LocalIdentity",
    "NullCipher",
    "RemoteDiaryStore",
    "content_signature",
    "is_encrypted",
    "merge_entries",
]
