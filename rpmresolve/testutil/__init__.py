"""
Test related utilities
"""
import json
import os
import pathlib
import re
from typing import Union


def make_fake_tree(basedir: pathlib.Path, fake_content: dict):
    """Create a directory tree of files with content.

    Call it with:
        {"filename": "content", "otherfile": b"binary content"}

    filename paths will have their parents created as needed, under basedir.
    """
    for path, content in fake_content.items():
        dirp, name = os.path.split(os.path.join(basedir, path.lstrip("/")))
        os.makedirs(dirp, exist_ok=True)
        if isinstance(content, bytes):
            with open(os.path.join(dirp, name), "wb") as fp:
                fp.write(content)
        else:
            with open(os.path.join(dirp, name), "w", encoding="utf-8") as fp:
                fp.write(content)


def make_config(tmp_path: pathlib.Path, config: Union[dict, str], name: str = "config.json") -> str:
    """Write a configuration file and return its path"""
    path = tmp_path / name
    path.write_text(config if isinstance(config, str) else json.dumps(config), encoding="utf8")
    return os.fspath(path)


def assert_jsonschema_error_contains(res, expected_err, expected_num_errs=None):
    err_msgs = [e.as_dict()["message"] for e in res.errors]
    if expected_num_errs is not None:
        assert len(err_msgs) == expected_num_errs, \
            f"expected exactly {expected_num_errs} errors in {[e.as_dict() for e in res.errors]}"
    if isinstance(expected_err, re.Pattern):
        finder = expected_err.search
    else:
        def finder(s): return expected_err in s  # pylint: disable=C0321
    assert any(finder(err_msg)
               for err_msg in err_msgs), f"{expected_err} not found in {err_msgs}"
