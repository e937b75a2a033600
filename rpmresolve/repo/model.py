"""
Repository index documents

In-memory representation of the two indirection layers in front of the
package metadata: the metalink mirror list and the repository index
(repomd.xml). Both are parsed from XML with `xml.etree.ElementTree`;
namespaces are ignored since mirrors disagree on them.
"""

import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Union

from rpmresolve.repo.exceptions import InvalidMetadata
from rpmresolve.solver.model import Checksum
from rpmresolve.util import checksum as checksum_util

# Name of the metalink file entry that describes the repository index
REPOMD = "repomd.xml"

PRIMARY = "primary"
FILELISTS = "filelists"


def _local(tag: str) -> str:
    """Strip the `{namespace}` prefix ElementTree adds to tags"""
    return tag.rsplit("}", 1)[-1]


def _children(node: ET.Element, name: str) -> List[ET.Element]:
    return [c for c in node if _local(c.tag) == name]


def _child(node: ET.Element, name: str) -> Optional[ET.Element]:
    for c in node:
        if _local(c.tag) == name:
            return c
    return None


def _text(node: ET.Element, name: str) -> Optional[str]:
    c = _child(node, name)
    if c is None or c.text is None:
        return None
    return c.text.strip()


def _int(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _root(data: Union[bytes, str], expected: str) -> ET.Element:
    root = ET.fromstring(data)
    if _local(root.tag) != expected:
        raise InvalidMetadata(f"expected <{expected}> document, got <{_local(root.tag)}>")
    return root


class MetalinkURL:
    """A single mirror candidate"""

    def __init__(self, url: str, protocol: str = "", type_: str = "", location: str = "",
                 preference: Optional[int] = None) -> None:
        self.url = url
        self.protocol = protocol
        self.type = type_
        self.location = location
        self.preference = preference

    @property
    def is_secure(self) -> bool:
        return self.protocol == "https"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetalinkURL):
            return False
        return (
            self.url == other.url
            and self.protocol == other.protocol
            and self.type == other.type
            and self.location == other.location
            and self.preference == other.preference
        )

    def __hash__(self) -> int:
        return hash((self.url, self.protocol, self.type, self.location, self.preference))

    def __repr__(self) -> str:
        return f"MetalinkURL(url='{self.url}', protocol='{self.protocol}', preference={self.preference})"


class MetalinkFile:
    """A `<file>` of a metalink: its name, expected hashes and mirror urls in document order"""

    def __init__(self, name: str, hashes: Optional[Dict[str, str]] = None, size: Optional[int] = None,
                 urls: Optional[List[MetalinkURL]] = None) -> None:
        self.name = name
        self.hashes = hashes or {}
        self.size = size
        self.urls = urls or []

    def checksum(self) -> Optional[Checksum]:
        """The strongest hash the verifier knows, or `None` if there is none"""
        algorithm = checksum_util.strongest(self.hashes.keys())
        if algorithm is None:
            return None
        return Checksum(algorithm, self.hashes[algorithm])

    def __repr__(self) -> str:
        return f"MetalinkFile(name='{self.name}', hashes={self.hashes}, urls={self.urls})"


class Metalink:
    """A parsed metalink (version 3) document"""

    def __init__(self, files: List[MetalinkFile]) -> None:
        self.files = files

    def file(self, name: str) -> Optional[MetalinkFile]:
        for f in self.files:
            if f.name == name:
                return f
        return None

    def repomd(self) -> Optional[MetalinkFile]:
        return self.file(REPOMD)

    @classmethod
    def parse(cls, data: Union[bytes, str]) -> "Metalink":
        """Parse a metalink document

        Raises `xml.etree.ElementTree.ParseError` on malformed XML and
        `InvalidMetadata` if the root is not a metalink.
        """
        root = _root(data, "metalink")
        files = []
        container = _child(root, "files")
        for node in _children(container, "file") if container is not None else []:
            hashes = {}
            verification = _child(node, "verification")
            if verification is not None:
                for h in _children(verification, "hash"):
                    if h.get("type") and h.text:
                        hashes[h.get("type")] = h.text.strip()
            urls = []
            resources = _child(node, "resources")
            if resources is not None:
                for u in _children(resources, "url"):
                    if not u.text:
                        continue
                    urls.append(MetalinkURL(
                        u.text.strip(),
                        protocol=u.get("protocol", ""),
                        type_=u.get("type", ""),
                        location=u.get("location", ""),
                        preference=_int(u.get("preference")),
                    ))
            files.append(MetalinkFile(node.get("name", ""), hashes, _int(_text(node, "size")), urls))
        return cls(files)

    def __repr__(self) -> str:
        return f"Metalink(files={self.files})"


# pylint: disable=too-many-instance-attributes
class RepomdData:
    """One `<data>` entry of repomd.xml"""

    def __init__(self, type_: str, href: Optional[str], checksum: Optional[Checksum] = None,
                 open_checksum: Optional[Checksum] = None, timestamp: Optional[int] = None,
                 size: Optional[int] = None, open_size: Optional[int] = None) -> None:
        self.type = type_
        self.href = href
        self.checksum = checksum
        self.open_checksum = open_checksum
        self.timestamp = timestamp
        self.size = size
        self.open_size = open_size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RepomdData):
            return False
        return (
            self.type == other.type
            and self.href == other.href
            and self.checksum == other.checksum
            and self.open_checksum == other.open_checksum
            and self.timestamp == other.timestamp
            and self.size == other.size
            and self.open_size == other.open_size
        )

    def __hash__(self) -> int:
        return hash((self.type, self.href, self.checksum))

    def __repr__(self) -> str:
        return f"RepomdData(type='{self.type}', href='{self.href}', checksum={self.checksum}, " \
            f"open_checksum={self.open_checksum}, size={self.size}, open_size={self.open_size})"


class Repomd:
    """A parsed repomd.xml"""

    def __init__(self, data: List[RepomdData], revision: Optional[str] = None) -> None:
        self.data = data
        self.revision = revision

    def file(self, type_: str) -> Optional[RepomdData]:
        for d in self.data:
            if d.type == type_:
                return d
        return None

    @staticmethod
    def _checksum(node: ET.Element, name: str) -> Optional[Checksum]:
        c = _child(node, name)
        if c is None or not c.text or not c.get("type"):
            return None
        return Checksum(c.get("type"), c.text.strip())

    @classmethod
    def parse(cls, data: Union[bytes, str]) -> "Repomd":
        """Parse a repomd document

        Raises `xml.etree.ElementTree.ParseError` on malformed XML and
        `InvalidMetadata` if the root is not a repomd.
        """
        root = _root(data, "repomd")
        entries = []
        for node in _children(root, "data"):
            location = _child(node, "location")
            entries.append(RepomdData(
                node.get("type", ""),
                location.get("href") if location is not None else None,
                checksum=cls._checksum(node, "checksum"),
                open_checksum=cls._checksum(node, "open-checksum"),
                timestamp=_int(_text(node, "timestamp")),
                size=_int(_text(node, "size")),
                open_size=_int(_text(node, "open-size")),
            ))
        return cls(entries, _text(root, "revision"))

    def __repr__(self) -> str:
        return f"Repomd(revision={self.revision!r}, data={self.data})"
