#
# Test for the util.compression module
#
import bz2
import gzip
import lzma

import pytest
import zstandard

from rpmresolve.util import compression

DATA = b"<metadata packages=\"0\"></metadata>\n" * 100


@pytest.mark.parametrize("compress,fmt", [
    pytest.param(lambda d: zstandard.ZstdCompressor().compress(d), "zstd", id="zstd"),
    pytest.param(gzip.compress, "gzip", id="gzip"),
    pytest.param(lzma.compress, "xz", id="xz"),
    pytest.param(bz2.compress, "bzip2", id="bzip2"),
    pytest.param(lambda d: d, "plain", id="plain"),
])
def test_open_decompressed(tmp_path, compress, fmt):
    path = tmp_path / "primary.xml.any"
    path.write_bytes(compress(DATA))

    assert compression.detect_format(path.read_bytes()[:8]) == fmt
    with compression.open_decompressed(path) as f:
        assert f.read() == DATA


def test_detect_format_ignores_name(tmp_path):
    # gzip content behind a name claiming zstd
    path = tmp_path / "primary.xml.zst"
    path.write_bytes(gzip.compress(DATA))

    with compression.open_decompressed(path) as f:
        assert f.read() == DATA


def test_detect_format_short_input():
    assert compression.detect_format(b"") == "plain"
    assert compression.detect_format(b"\x1f") == "plain"
