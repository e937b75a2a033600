"""Terminal output formatting"""

import sys
from typing import Dict, TextIO


class VT:
    """Video terminal escape sequences for one stream

    Every sequence is the empty string when the stream is not a tty, so
    redirected output stays plain.
    """

    escape_sequences: Dict[str, str] = {
        "reset": "\033[0m",
        "bold": "\033[1m",
        "red": "\033[31m",
        "green": "\033[32m",
        "yellow": "\033[33m",
    }

    def __init__(self, stream: TextIO) -> None:
        self.isatty = stream.isatty()

    def __getattr__(self, name: str) -> str:
        if name not in self.escape_sequences:
            raise AttributeError(name)
        if not self.isatty:
            return ""
        return self.escape_sequences[name]


fmt = VT(sys.stderr)
