"""
network related utilities
"""
import contextlib
import http.server
import io
import os
import socket
import sys
import threading
import urllib.error
from http.server import ThreadingHTTPServer
from typing import Dict, Union

from .atomic import AtomicCounter, AtomicLog


def print_dir(directory):
    for root, _, files in os.walk(directory):
        for fn in files:
            print(os.path.join(root, fn), file=sys.stderr)


def _get_free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("localhost", 0))
        return s.getsockname()[1]


class SilentHTTPRequestHandler(http.server.SimpleHTTPRequestHandler):
    def log_message(self, *args, **kwargs):
        pass

    def do_GET(self):
        self.server.paths.append(self.path)
        # silence errors when the other side "hangs up" unexpectedly
        try:
            super().do_GET()
        except (ConnectionResetError, BrokenPipeError):
            pass


class DirHTTPServer(ThreadingHTTPServer):
    """Serves `directory`, answering the first `simulate_failures` requests with 404

    `reqs` counts all requests, `paths` records the requested paths in
    arrival order.
    """

    def __init__(self, *args, directory=None, simulate_failures=0, **kwargs):
        super().__init__(*args, **kwargs)
        print("Serving:", file=sys.stderr)
        print_dir(directory)
        self.directory = directory
        self.simulate_failures = AtomicCounter(simulate_failures)
        self.reqs = AtomicCounter()
        self.paths = AtomicLog()

    @property
    def url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"

    def finish_request(self, request, client_address):
        self.reqs.inc()
        if self.simulate_failures.dec():
            SilentHTTPRequestHandler(
                request, client_address, self, directory="does-not-exists")
            return
        SilentHTTPRequestHandler(
            request, client_address, self, directory=self.directory)


@contextlib.contextmanager
def http_serve_directory(rootdir, simulate_failures=0):
    port = _get_free_port()
    httpd = DirHTTPServer(
        ("localhost", port),
        SilentHTTPRequestHandler,
        directory=os.fspath(rootdir),
        simulate_failures=simulate_failures,
    )
    threading.Thread(target=httpd.serve_forever, daemon=True).start()
    try:
        yield httpd
    finally:
        httpd.shutdown()
        httpd.server_close()


class FakeGetter:
    """A `Getter` answering from a dict instead of the network

    `responses` maps urls to the bytes to return or to an exception to
    raise. Unknown urls fail like a 404 would. Every call is recorded in
    `requests`, in order.
    """

    def __init__(self, responses: Dict[str, Union[bytes, Exception]]) -> None:
        self.responses = responses
        self._log = AtomicLog()

    @property
    def requests(self):
        return self._log.items

    def get(self, url: str):
        self._log.append(url)
        response = self.responses.get(url)
        if response is None:
            raise urllib.error.HTTPError(url, 404, "Not Found", None, None)
        if isinstance(response, Exception):
            raise response
        return io.BytesIO(response)
