"""HTTP front end for the deduplicating storage service."""

import argparse
import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from .service import DEFAULT_BLOOM_BITS, DEFAULT_CAPACITY, DedupService

log = logging.getLogger(__name__)


class _RequestHandler(BaseHTTPRequestHandler):
    """Takes ``POST /<method>`` with a JSON body and answers with JSON."""

    def setup(self):
        self.timeout = self.server.idle_timeout
        super().setup()

    def do_POST(self):
        method = self.path.strip("/")
        try:
            length = int(self.headers.get("Content-Length", 0))
            payload = json.loads(self.rfile.read(length) or b"{}")
        except ValueError:
            self.send_error(400, "malformed request body")
            return
        try:
            reply = self.server.service.handle(method, payload)
        except Exception:
            log.exception("request %s failed", method)
            self.send_error(500)
            return
        body = json.dumps(reply).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        log.debug("%s - %s", self.address_string(), format % args)


class _DedupHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address, service):
        self.service = service
        self.idle_timeout = None
        super().__init__(address, _RequestHandler)


def make_server(host, port, service):
    """Bind an HTTP server that answers requests with ``service``."""
    return _DedupHTTPServer((host, port), service)


def _parse_endpoint(text):
    host, sep, port = text.rpartition(":")
    if not sep or not port.isdigit():
        return None
    return host.strip("[]"), int(port)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run the deduplicating storage server.")
    parser.add_argument("--port", type=int, default=8000, help="TCP port of this server")
    parser.add_argument("--listen_addr", default="",
                        help="host:port to listen on; overrides --port")
    parser.add_argument("--idle_timeout_s", type=int, default=-1,
                        help="close connections idle for this many seconds")
    parser.add_argument("--root", default=".", help="directory holding the stored data")
    parser.add_argument("--bloom_bits", type=int, default=DEFAULT_BLOOM_BITS)
    parser.add_argument("--capacity", type=int, default=DEFAULT_CAPACITY,
                        help="size limit of one data file in bytes")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    if args.listen_addr:
        endpoint = _parse_endpoint(args.listen_addr)
        if endpoint is None:
            log.error("Invalid listen address: %s", args.listen_addr)
            return -1
    else:
        endpoint = ("", args.port)

    try:
        server = make_server(*endpoint, DedupService(args.root, args.bloom_bits, args.capacity))
    except (OSError, ValueError) as err:
        log.error("Fail to start server: %s", err)
        return -1
    if args.idle_timeout_s > 0:
        server.idle_timeout = args.idle_timeout_s

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0