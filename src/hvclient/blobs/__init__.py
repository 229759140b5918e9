"""Blob handles, chunked transfer streams and block hashing."""

from hvclient.blobs._cipher import AesCbcChunkCipher, ChunkCipher
from hvclient.blobs._client import BlobTransferClient, HttpBlobTransferClient
from hvclient.blobs._handle import Blob
from hvclient.blobs._hashing import BlobHashAlgorithm, BlobHasher, BlobHashInfo
from hvclient.blobs._helpers import new_blob_from_file
from hvclient.blobs._memory import InMemoryBlobTransferClient, UploadedChunk
from hvclient.blobs._session import ChunkUploadSession
from hvclient.blobs._store import BlobStore
from hvclient.blobs._stream import BlobStream

__all__ = [
    "AesCbcChunkCipher",
    "Blob",
    "BlobHashAlgorithm",
    "BlobHashInfo",
    "BlobHasher",
    "BlobStore",
    "BlobStream",
    "BlobTransferClient",
    "ChunkCipher",
    "ChunkUploadSession",
    "HttpBlobTransferClient",
    "InMemoryBlobTransferClient",
    "UploadedChunk",
    "new_blob_from_file",
]
