"""Common fixtures"""

import pytest

from rpmresolve.testutil import repo as testrepo


@pytest.fixture(name="fake_repo")
def fake_repo_fixture():
    return testrepo.MirroredRepo("fedora", [
        testrepo.package("libfoo", "2.0-1", requires=["libbar >= 1.5"]),
        testrepo.package("libbar", "1.4-1"),
        testrepo.package("libbar", "1.6-1", files=["/usr/lib64/libbar.so.1"]),
    ])


@pytest.fixture(name="cachedir")
def cachedir_fixture(tmp_path):
    path = tmp_path / "cache"
    path.mkdir()
    return path
