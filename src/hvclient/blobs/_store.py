"""BlobStore: the named blobs attached to one record item or connect package."""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO
from xml.etree.ElementTree import Element

from hvclient.blobs._handle import DEFAULT_CONTENT_TYPE, Blob
from hvclient.config import ClientConfig
from hvclient.serde import local_name

if TYPE_CHECKING:
    from collections.abc import Iterator

    from hvclient.blobs._client import BlobTransferClient
    from hvclient.blobs._hashing import BlobHashInfo
    from hvclient.types import ConnectPackageParameters, RecordReference


class BlobStore:
    """Mapping of blob name to Blob, bound to one record or connect package.

    The empty name ``""`` is the default blob. Deleted names are remembered in
    ``removed_blobs`` so the service can be told to drop them. ``to_xml``
    freezes every blob it serializes.
    """

    def __init__(
        self,
        *,
        record: RecordReference | None = None,
        package: ConnectPackageParameters | None = None,
        transfer: BlobTransferClient | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        """Initialize an empty store for a record or connect package."""
        if record is not None and package is not None:
            msg = "A blob store belongs to either a record or a connect package, not both."
            raise ValueError(msg)
        self._record = record
        self._package = package
        self._transfer = transfer
        self._config = config if config is not None else ClientConfig()
        self._blobs: dict[str, Blob] = {}
        self._removed: list[str] = []

    def __getitem__(self, name: str) -> Blob:
        """Return the blob called ``name``."""
        return self._blobs[name]

    def __contains__(self, name: object) -> bool:
        """Check whether a blob with this name exists."""
        return name in self._blobs

    def __iter__(self) -> Iterator[str]:
        """Iterate blob names in insertion order."""
        return iter(self._blobs)

    def __len__(self) -> int:
        """Number of blobs."""
        return len(self._blobs)

    def __delitem__(self, name: str) -> None:
        """Remove a blob and remember its name."""
        del self._blobs[name]
        if name not in self._removed:
            self._removed.append(name)

    def get(self, name: str, default: Blob | None = None) -> Blob | None:
        """Return the blob called ``name`` or ``default``."""
        return self._blobs.get(name, default)

    @property
    def default_blob(self) -> Blob | None:
        """The blob with the empty name, if any."""
        return self._blobs.get("")

    @property
    def removed_blobs(self) -> tuple[str, ...]:
        """Names deleted since the store was created or parsed."""
        return tuple(self._removed)

    def new_blob(self, name: str = "", content_type: str = DEFAULT_CONTENT_TYPE) -> Blob:
        """Create an empty blob, replacing any blob with the same name."""
        blob = Blob(
            name,
            content_type,
            record=self._record,
            package=self._package,
            transfer=self._transfer,
            config=self._config,
        )
        self._blobs[name] = blob
        if name in self._removed:
            self._removed.remove(name)
        return blob

    def write_inline(self, name: str, content_type: str, data: str | bytes) -> Blob:
        """Create a blob holding ``data`` inline."""
        blob = self.new_blob(name, content_type)
        blob.write_inline(data)
        return blob

    def write(self, name: str, content_type: str, source: BinaryIO) -> BlobHashInfo:
        """Create a blob and stream ``source`` into it."""
        return self.new_blob(name, content_type).write(source)

    def to_xml(self) -> Element:
        """Serialize every blob into a ``<blob-payload>`` element and freeze them."""
        root = Element("blob-payload")
        elements = [blob.to_xml() for blob in self._blobs.values()]
        for element in elements:
            root.append(element)
        for blob in self._blobs.values():
            blob.freeze()
        return root

    def parse_xml(self, element: Element) -> None:
        """Replace the store contents with the blobs in a ``<blob-payload>`` element."""
        self._blobs.clear()
        self._removed.clear()
        for child in element:
            if local_name(child.tag) != "blob":
                continue
            blob = Blob.from_xml(
                child,
                record=self._record,
                package=self._package,
                transfer=self._transfer,
                config=self._config,
            )
            self._blobs[blob.name] = blob
