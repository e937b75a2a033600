"""
Unit tests for rpmresolve.solver.request classes
"""

import pytest

from rpmresolve.solver.exceptions import InvalidRequestError
from rpmresolve.solver.request import ResolutionRequest


class TestResolutionRequest:

    @pytest.mark.parametrize("kwargs,exception", [
        pytest.param({"names": ["bash", "vim"]}, None, id="minimal"),
        pytest.param({"names": ["bash"], "locale": "de", "arch": "aarch64"}, None, id="full"),
        pytest.param(
            {"names": []},
            InvalidRequestError("Resolution request must contain at least one package name"),
            id="invalid_empty_names",
        ),
        pytest.param(
            {"names": ["bash", " "]},
            InvalidRequestError("Package names must not be empty"),
            id="invalid_blank_name",
        ),
        pytest.param(
            {"names": ["bash"], "locale": ""},
            InvalidRequestError("Field 'locale' is required"),
            id="invalid_empty_locale",
        ),
    ])
    def test_constructor(self, kwargs, exception):
        if exception:
            with pytest.raises(type(exception), match=str(exception)):
                ResolutionRequest(**kwargs)
        else:
            req = ResolutionRequest(**kwargs)
            assert req.names == sorted(kwargs["names"])
            assert req.locale == kwargs.get("locale", "en")
            assert req.arch == kwargs.get("arch")

    def test_order_and_duplicates_do_not_matter(self):
        assert ResolutionRequest(["vim", "bash", "vim"]) == ResolutionRequest(["bash", "vim"])
        assert hash(ResolutionRequest(["vim", "bash"])) == hash(ResolutionRequest(["bash", "vim"]))
        assert ResolutionRequest(["vim", "bash"]).names == ["bash", "vim"]

    def test_inequality(self):
        assert ResolutionRequest(["bash"]) != ResolutionRequest(["bash"], locale="de")
        assert ResolutionRequest(["bash"]) != ResolutionRequest(["bash"], arch="x86_64")
