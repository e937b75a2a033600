"""
Request model for the resolver
"""

from typing import List, Optional

from rpmresolve.solver.exceptions import InvalidRequestError

DEFAULT_LOCALE = "en"


class ResolutionRequest:
    """The top-level package names to resolve and the locale/arch to resolve for

    `locale` selects which language packs (`<base>-langpack-<locale>`)
    may satisfy a requirement. `arch` restricts candidates to that
    architecture and noarch; `None` allows every binary architecture.
    """

    def __init__(self, names: List[str], locale: str = DEFAULT_LOCALE, arch: Optional[str] = None):
        if not names:
            raise InvalidRequestError("Resolution request must contain at least one package name")
        if any(not name or not name.strip() for name in names):
            raise InvalidRequestError("Package names must not be empty")
        if not locale:
            raise InvalidRequestError("Field 'locale' is required")

        # order does not influence the result, duplicates are meaningless
        self.names = sorted(set(names))
        self.locale = locale
        self.arch = arch

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolutionRequest):
            return False
        return self.names == other.names and self.locale == other.locale and self.arch == other.arch

    def __hash__(self) -> int:
        return hash((tuple(self.names), self.locale, self.arch))

    def __repr__(self) -> str:
        return f"ResolutionRequest(names={self.names}, locale='{self.locale}', arch={self.arch!r})"
