import urllib.error
import urllib.request

import pytest

from rpmresolve.testutil import make_fake_tree
from rpmresolve.testutil.atomic import AtomicCounter
from rpmresolve.testutil.net import FakeGetter, http_serve_directory


def test_http_serve_directory_smoke(tmp_path):
    make_fake_tree(tmp_path, {
        "file1": "file1 content",
        "dir1/file2": b"file2 content",
    })
    with http_serve_directory(tmp_path) as httpd:
        with urllib.request.urlopen(f"{httpd.url}/file1") as resp:
            assert resp.read() == b"file1 content"
        with urllib.request.urlopen(f"{httpd.url}/dir1/file2") as resp:
            assert resp.read() == b"file2 content"
        assert httpd.reqs.count == 2
        assert httpd.paths.items == ["/file1", "/dir1/file2"]


def test_http_serve_directory_simulate_failures(tmp_path):
    make_fake_tree(tmp_path, {"file1": "file1 content"})
    with http_serve_directory(tmp_path, simulate_failures=1) as httpd:
        with pytest.raises(urllib.error.HTTPError) as exc:
            urllib.request.urlopen(f"{httpd.url}/file1")  # pylint: disable=consider-using-with
        assert exc.value.code == 404
        exc.value.close()
        with urllib.request.urlopen(f"{httpd.url}/file1") as resp:
            assert resp.read() == b"file1 content"


def test_fake_getter():
    getter = FakeGetter({
        "https://a/ok": b"content",
        "https://a/broken": ConnectionResetError("reset"),
    })

    with getter.get("https://a/ok") as f:
        assert f.read() == b"content"
    with pytest.raises(ConnectionResetError):
        getter.get("https://a/broken")
    with pytest.raises(urllib.error.HTTPError):
        getter.get("https://a/missing")
    assert getter.requests == ["https://a/ok", "https://a/broken", "https://a/missing"]


def test_atomic_counter():
    counter = AtomicCounter(1)
    assert counter.dec()
    assert not counter.dec()
    counter.inc()
    assert counter.count == 1
