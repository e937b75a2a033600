"""Configuration of repositories and resolution defaults

The configuration is a JSON document listing the repositories to fetch, each
with a name and either a metalink or a base url, plus optional defaults for
the cache directory, architecture and locale. It is validated against a JSON
schema before anything is constructed from it; all errors are collected in a
`ValidationResult` so that they can be reported at once.
"""
import copy
import json
import os
from collections import deque
from typing import Deque, Dict, List, Optional, Sequence, Set, Union

import jsonschema

from rpmresolve.solver.request import DEFAULT_LOCALE
from rpmresolve.util.types import PathLike

FAILED_TITLE = "JSON Schema validation failed"

DEFAULT_CACHEDIR = ".rpmresolve-cache"

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-04/schema#",
    "type": "object",
    "additionalProperties": False,
    "required": ["repositories"],
    "properties": {
        "cachedir": {"type": "string", "minLength": 1},
        "arch": {"type": "string", "minLength": 1},
        "locale": {"type": "string", "minLength": 1},
        "repositories": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["name"],
                "properties": {
                    "name": {
                        "type": "string",
                        "pattern": "^[A-Za-z0-9_][A-Za-z0-9_.+-]*$",
                    },
                    "metalink": {"type": "string", "pattern": "^https?://"},
                    "baseurl": {"type": "string", "pattern": "^(https?|file)://"},
                },
                "oneOf": [
                    {"required": ["metalink"]},
                    {"required": ["baseurl"]},
                ],
            },
        },
    },
}


class ValidationError:
    """Describes a single failed validation

    Consists of a `message` member describing the error
    that occurred and a `path` that points to the element
    that caused the error.
    """

    def __init__(self, message: str):
        self.message = message
        self.path: Deque[Union[int, str]] = deque()

    @classmethod
    def from_exception(cls, ex):
        err = cls(ex.message)
        err.path = ex.absolute_path
        return err

    @property
    def id(self):
        if not self.path:
            return "."

        result = ""
        for p in self.path:
            if isinstance(p, str):
                if " " in p:
                    p = f"'{p}'"
                result += "." + p
            elif isinstance(p, int):
                result += f"[{p}]"
            else:
                raise AssertionError("new type")

        return result

    def as_dict(self):
        return {
            "message": self.message,
            "path": list(self.path)
        }

    def rebase(self, path: Sequence[Union[int, str]]):
        """Prepend the `path` to `self.path`"""
        self.path.extendleft(reversed(path))

    def __hash__(self):
        return hash((self.id, self.message))

    def __eq__(self, other: object):
        if not isinstance(other, ValidationError):
            raise ValueError("Need ValidationError")

        if self.id != other.id:
            return False
        return self.message == other.message

    def __lt__(self, other: "ValidationError"):
        if not isinstance(other, ValidationError):
            raise ValueError("Need ValidationError")

        return (self.id, self.message) < (other.id, other.message)

    def __str__(self):
        return f"ValidationError: {self.message} [{self.id}]"


class ValidationResult:
    """Result of a configuration validation"""

    def __init__(self, origin: Optional[str]):
        self.origin = origin
        self.errors: Set[ValidationError] = set()

    def fail(self, msg: str, path: Sequence[Union[int, str]] = ()) -> ValidationError:
        """Add a new `ValidationError` with `msg` as message"""
        err = ValidationError(msg)
        err.rebase(path)
        self.errors.add(err)
        return err

    def add(self, err: ValidationError):
        self.errors.add(err)
        return self

    def as_dict(self):
        errors = [e.as_dict() for e in self]
        if not errors:
            return {}

        return {
            "title": FAILED_TITLE,
            "origin": self.origin,
            "success": False,
            "errors": errors
        }

    @property
    def valid(self):
        """Returns `True` if there are zero errors"""
        return len(self) == 0

    def __iadd__(self, error: ValidationError):
        return self.add(error)

    def __bool__(self):
        return self.valid

    def __len__(self):
        return len(self.errors)

    def __iter__(self):
        return iter(sorted(self.errors))

    def __str__(self):
        lines = [f"{self.origin or '<config>'}: {len(self)} error(s)"]
        lines += [f"  {e.id}: {e.message}" for e in self]
        return "\n".join(lines)


class ConfigError(ValueError):
    def __init__(self, result: ValidationResult):
        super().__init__(str(result))
        self.result = result


class Schema:
    """JSON Schema representation

    Wraps a Draft 4 validator around `schema`, checking the schema itself
    lazily on first use.
    """

    def __init__(self, schema: Dict, name: Optional[str] = None):
        self.data = schema
        self.name = name
        self._validator: Optional[jsonschema.Draft4Validator] = None

    def check(self) -> ValidationResult:
        """Validate the `schema` data itself"""
        res = ValidationResult(self.name)

        if self._validator:
            return res

        try:
            Validator = jsonschema.Draft4Validator
            Validator.check_schema(self.data)
            self._validator = Validator(self.data)
        except jsonschema.exceptions.SchemaError as err:
            res += ValidationError.from_exception(err)

        return res

    def validate(self, target) -> ValidationResult:
        res = self.check()

        if not res:
            return res

        if not self._validator:
            raise RuntimeError("Trying to validate without validator.")

        for error in self._validator.iter_errors(target):
            res += ValidationError.from_exception(error)

        return res


class RepositoryConfig:
    """A repository to fetch: a name and either a metalink or a base url"""

    def __init__(self, name: str, metalink: Optional[str] = None, baseurl: Optional[str] = None) -> None:
        if not name or "/" in name or name in (".", ".."):
            raise ValueError(f"invalid repository name '{name}'")
        if bool(metalink) == bool(baseurl):
            raise ValueError(f"repository '{name}': exactly one of 'metalink' or 'baseurl' must be specified")
        self.name = name
        self.metalink = metalink
        self.baseurl = baseurl

    @classmethod
    def from_dict(cls, data: Dict) -> "RepositoryConfig":
        return cls(data["name"], metalink=data.get("metalink"), baseurl=data.get("baseurl"))

    def as_dict(self) -> Dict:
        d = {"name": self.name}
        if self.metalink:
            d["metalink"] = self.metalink
        if self.baseurl:
            d["baseurl"] = self.baseurl
        return d

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RepositoryConfig):
            return False
        return self.name == other.name and self.metalink == other.metalink and self.baseurl == other.baseurl

    def __hash__(self) -> int:
        return hash((self.name, self.metalink, self.baseurl))

    def __repr__(self) -> str:
        return f"RepositoryConfig(name='{self.name}', metalink={self.metalink!r}, baseurl={self.baseurl!r})"


class Config:
    """The validated configuration"""

    def __init__(self, repositories: List[RepositoryConfig], cachedir: Optional[str] = None,
                 arch: Optional[str] = None, locale: str = DEFAULT_LOCALE) -> None:
        self.repositories = repositories
        self.cachedir = cachedir or os.environ.get("RPMRESOLVE_CACHEDIR") or DEFAULT_CACHEDIR
        self.arch = arch
        self.locale = locale

    def __repr__(self) -> str:
        return f"Config(repositories={self.repositories}, cachedir='{self.cachedir}', " \
            f"arch={self.arch!r}, locale='{self.locale}')"


def validate(data, origin: Optional[str] = None) -> ValidationResult:
    """Validate a configuration description

    Runs the schema and then checks what the schema cannot express,
    currently that repository names are unique.
    """
    res = Schema(CONFIG_SCHEMA, origin).validate(data)
    if not res:
        return res

    seen = set()
    for i, repo in enumerate(data["repositories"]):
        if repo["name"] in seen:
            res.fail(f"duplicate repository name '{repo['name']}'", ["repositories", i, "name"])
        seen.add(repo["name"])

    return res


def from_dict(data, origin: Optional[str] = None) -> Config:
    """Validate `data` and build a `Config` from it, raising `ConfigError` if invalid"""
    res = validate(data, origin)
    if not res:
        raise ConfigError(res)

    data = copy.deepcopy(data)
    return Config(
        [RepositoryConfig.from_dict(r) for r in data["repositories"]],
        cachedir=data.get("cachedir"),
        arch=data.get("arch"),
        locale=data.get("locale", DEFAULT_LOCALE),
    )


def load_config(path: PathLike) -> Config:
    """Read the JSON configuration at `path`"""
    with open(path, encoding="utf8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            res = ValidationResult(os.fspath(path))
            res.fail(f"invalid JSON: {e}")
            raise ConfigError(res) from e
    return from_dict(data, os.fspath(path))
