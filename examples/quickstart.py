"""Upload a file to a health record with an application certificate.

Set HVCLIENT_SERVICE_URL and HVCLIENT_APPLICATION_ID, then run:

    python examples/quickstart.py app-key.pem app-cert.pem RECORD_ID path/to/file
"""

import logging
import sys
from pathlib import Path

from hvclient import ClientConfig, HealthVaultClient, WebApplicationCredential
from hvclient.blobs import new_blob_from_file

logging.basicConfig(level=logging.INFO)

key_path, cert_path, record_id, file_path = sys.argv[1:5]

config = ClientConfig.from_env()
if not config.application_id:
    sys.exit("HVCLIENT_APPLICATION_ID is not set")

credential = WebApplicationCredential.from_pem(
    config.application_id,
    Path(key_path).read_bytes(),
    certificate_pem=Path(cert_path).read_bytes(),
)

with HealthVaultClient(config, credential) as client:
    store = client.record_blobs(record_id)
    blob = new_blob_from_file(store, file_path)
    print(f"Uploaded {blob.name} ({blob.content_length} bytes) to {blob.url}")
    print(f"hash: {blob.hash_info.hex if blob.hash_info else '-'}")
