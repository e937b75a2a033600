"""
Tests for metalink and repomd.xml parsing
"""

import xml.etree.ElementTree as ET

import pytest

from rpmresolve.repo.exceptions import InvalidMetadata
from rpmresolve.repo.model import Metalink, MetalinkURL, Repomd, RepomdData
from rpmresolve.solver.model import Checksum
from rpmresolve.testutil import repo as testrepo

METALINK = b"""<?xml version="1.0" encoding="utf-8"?>
<metalink version="3.0" xmlns="http://www.metalinker.org/" type="dynamic"
          xmlns:mm0="http://fedorahosted.org/mirrormanager">
 <files>
  <file name="repomd.xml">
   <mm0:timestamp>1717000000</mm0:timestamp>
   <size>7005</size>
   <verification>
    <hash type="md5">a1b2</hash>
    <hash type="sha1">c3d4</hash>
    <hash type="sha256">e5f6</hash>
    <hash type="sha512">0789</hash>
   </verification>
   <resources maxconnections="1">
    <url protocol="https" type="https" location="DE" preference="100">https://ftp.example.de/fedora/repodata/repomd.xml</url>
    <url protocol="http" type="http" location="DE" preference="100">http://ftp.example.de/fedora/repodata/repomd.xml</url>
    <url protocol="rsync" type="rsync" location="US" preference="99">rsync://mirror.example.com/fedora/repodata/repomd.xml</url>
    <url protocol="https" type="https" location="US" preference="99">https://mirror.example.com/fedora/repodata/repomd.xml</url>
    <url protocol="https" type="https"></url>
   </resources>
  </file>
 </files>
</metalink>
"""

REPOMD = b"""<?xml version="1.0" encoding="UTF-8"?>
<repomd xmlns="http://linux.duke.edu/metadata/repo" xmlns:rpm="http://linux.duke.edu/metadata/rpm">
  <revision>1717000000</revision>
  <data type="primary">
    <checksum type="sha256">aaaa</checksum>
    <open-checksum type="sha256">bbbb</open-checksum>
    <location href="repodata/aaaa-primary.xml.zst"/>
    <timestamp>1717000001</timestamp>
    <size>123</size>
    <open-size>456</open-size>
  </data>
  <data type="filelists">
    <checksum type="sha">cccc</checksum>
    <location href="repodata/cccc-filelists.xml.gz"/>
    <timestamp>1717000002</timestamp>
    <size>789</size>
  </data>
  <data type="group">
    <location href="repodata/comps.xml"/>
  </data>
</repomd>
"""


def test_metalink_parse():
    metalink = Metalink.parse(METALINK)

    repomd = metalink.repomd()
    assert repomd is not None
    assert repomd.size == 7005
    assert repomd.hashes == {"md5": "a1b2", "sha1": "c3d4", "sha256": "e5f6", "sha512": "0789"}
    # empty urls are skipped, document order is kept
    assert repomd.urls == [
        MetalinkURL("https://ftp.example.de/fedora/repodata/repomd.xml", "https", "https", "DE", 100),
        MetalinkURL("http://ftp.example.de/fedora/repodata/repomd.xml", "http", "http", "DE", 100),
        MetalinkURL("rsync://mirror.example.com/fedora/repodata/repomd.xml", "rsync", "rsync", "US", 99),
        MetalinkURL("https://mirror.example.com/fedora/repodata/repomd.xml", "https", "https", "US", 99),
    ]
    assert [u.is_secure for u in repomd.urls] == [True, False, False, True]


@pytest.mark.parametrize("hashes,expected", [
    pytest.param({"md5": "1", "sha1": "2", "sha256": "3", "sha512": "4"}, Checksum("sha512", "4"), id="sha512"),
    pytest.param({"md5": "1", "sha256": "3"}, Checksum("sha256", "3"), id="sha256"),
    pytest.param({"md5": "1"}, Checksum("md5", "1"), id="md5-only"),
    pytest.param({"whirlpool": "1"}, None, id="unknown"),
    pytest.param({}, None, id="none"),
])
def test_metalink_strongest_hash(hashes, expected):
    data = testrepo.metalink_xml(b"", [("https://m/repodata/repomd.xml", "https")], hashes)
    assert Metalink.parse(data).repomd().checksum() == expected


def test_metalink_without_repomd():
    metalink = Metalink.parse(b'<metalink xmlns="http://www.metalinker.org/"><files>'
                              b'<file name="other.xml"/></files></metalink>')
    assert metalink.repomd() is None
    assert metalink.file("other.xml").urls == []


def test_metalink_without_namespace():
    data = METALINK.replace(b' xmlns="http://www.metalinker.org/"', b"")
    assert len(Metalink.parse(data).repomd().urls) == 4


def test_metalink_wrong_document():
    with pytest.raises(InvalidMetadata, match="expected <metalink> document, got <repomd>"):
        Metalink.parse(REPOMD)


def test_metalink_malformed():
    with pytest.raises(ET.ParseError):
        Metalink.parse(METALINK[:100])


def test_repomd_parse():
    repomd = Repomd.parse(REPOMD)

    assert repomd.revision == "1717000000"
    assert repomd.file("primary") == RepomdData(
        "primary", "repodata/aaaa-primary.xml.zst",
        checksum=Checksum("sha256", "aaaa"),
        open_checksum=Checksum("sha256", "bbbb"),
        timestamp=1717000001, size=123, open_size=456,
    )
    filelists = repomd.file("filelists")
    assert filelists.checksum == Checksum("sha", "cccc")
    assert filelists.open_checksum is None
    assert filelists.open_size is None
    group = repomd.file("group")
    assert group.href == "repodata/comps.xml"
    assert group.checksum is None
    assert repomd.file("updateinfo") is None


def test_repomd_generated():
    files = testrepo.repo_files([testrepo.package("bash")])
    repomd = Repomd.parse(files["repodata/repomd.xml"])

    for file_type in ("primary", "filelists"):
        data = repomd.file(file_type)
        assert data.checksum == Checksum("sha256", testrepo.digest(files[data.href]))
        assert data.size == len(files[data.href])


def test_repomd_wrong_document():
    with pytest.raises(InvalidMetadata):
        Repomd.parse(METALINK)
