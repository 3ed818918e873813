#!/usr/bin/env python3
"""
Example: A tiny dev server to run under dwatcher

    dwatcher python examples/server.py --ext py --verbose

Edit this file while it runs and dwatcher restarts it. The server reports
whether it is running under supervision via the DWATCHER_RUNNING variable.
"""

import os
from http.server import BaseHTTPRequestHandler, HTTPServer

PORT = int(os.environ.get("PORT", "8000"))


class Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        supervised = os.environ.get("DWATCHER_RUNNING") == "1"
        body = f"pid={os.getpid()} supervised={supervised}\n".encode()
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


if __name__ == "__main__":
    server = HTTPServer(("127.0.0.1", PORT), Handler)
    print(f"Serving on http://127.0.0.1:{PORT} (pid {os.getpid()})", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
