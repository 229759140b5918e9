"""Chunked blob uploads and ranged reads against the in-memory transfer client."""

import io

from hvclient import RecordReference
from hvclient.blobs import AesCbcChunkCipher, BlobStore, InMemoryBlobTransferClient
from hvclient.types import ConnectPackageParameters

# ---- Record blobs ----
# 4-byte chunks make the chunk boundaries easy to see.

transfer = InMemoryBlobTransferClient(chunk_size=4, hash_block_size=2)
store = BlobStore(record=RecordReference("record-1"), transfer=transfer)

info = store.write("notes", "text/plain", io.BytesIO(b"hello chunked world"))
print(f"[upload] digest={info.hex[:16]}..., block_size={info.block_size}")
for chunk in transfer.uploads:
    print(f"  {chunk.content_range or '(empty)'} complete={chunk.complete}")

# ---- Streaming writes ----
# Writes are buffered and flushed one full chunk at a time; complete() sends the rest.

blob = store.new_blob("log", "text/plain")
with blob.get_writer_stream() as stream:
    for line in (b"first\n", b"second\n", b"third\n"):
        stream.write(line)
print(f"\n[stream] length={blob.content_length}, url={blob.url}")

# ---- Reading back ----

with store["notes"].get_reader_stream() as reader:
    reader.seek(6)
    print(f"\n[read] from offset 6: {reader.read()!r}")
print(f"  verified text: {store['notes'].read_as_string()!r}")

# ---- Inline blobs ----

store.write_inline("summary", "text/plain", "small enough to embed")
print(f"\n[inline] {len(store)} blobs: {sorted(store)}")

# ---- Connect package blobs ----
# Each plaintext chunk is encrypted; wire offsets advance by the encrypted chunk size.

package_transfer = InMemoryBlobTransferClient(chunk_size=32)
cipher = AesCbcChunkCipher.generate()
package_store = BlobStore(package=ConnectPackageParameters(cipher=cipher), transfer=package_transfer)
package_store.write("", "application/octet-stream", io.BytesIO(bytes(80)))
print(f"\n[package] wire ranges: {[chunk.content_range for chunk in package_transfer.uploads]}")
