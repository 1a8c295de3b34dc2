"""
HTTP trigger for on-demand syncs (cron or admin).
POST /api/sync with "Authorization: Bearer <INGEST_SECRET_KEY>". Answers with aggregate counts only.
"""
from __future__ import annotations

import argparse
import hmac
import json
import logging
import os
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Callable, Optional

from feedsync.config import load_config
from feedsync.errors import ConfigError, SyncAlreadyRunning
from feedsync.job.params import SyncConfig
from feedsync.job.runner import SyncResult, run_sync
from feedsync.util.log import setup_logging

logger = logging.getLogger(__name__)

SYNC_PATH = "/api/sync"

SyncFn = Callable[[], SyncResult]


def is_authorized(authorization: Optional[str], secret: Optional[str]) -> bool:
    """Bearer token check. With no secret configured nothing is authorized."""
    if not secret:
        return False
    header = (authorization or "").strip()
    if not header.startswith("Bearer "):
        return False
    return hmac.compare_digest(header[len("Bearer "):].strip().encode(), secret.encode())


def handle_sync_request(
    authorization: Optional[str],
    secret: Optional[str],
    sync: SyncFn,
) -> tuple[int, dict[str, Any]]:
    """Run `sync` for an authorized caller. Returns (HTTP status, JSON payload)."""
    if not is_authorized(authorization, secret):
        return 401, {"success": False, "error": "Unauthorized"}
    try:
        result = sync()
    except SyncAlreadyRunning as e:
        return 409, {"success": False, "error": "Sync already running", "details": str(e)}
    except ConfigError as e:
        logger.error("config error: %s", e)
        return 500, {"success": False, "error": "Configuration error", "details": str(e)}
    except Exception as e:
        logger.exception("sync failed")
        return 500, {"success": False, "error": "Sync failed", "details": str(e)}
    payload = result.to_dict()
    payload["success"] = result.state == "success"
    return 200, payload


def _default_sync() -> SyncResult:
    config = SyncConfig.from_sources(load_config(), os.environ)
    return run_sync(config)


def make_handler(secret: Optional[str], sync: SyncFn = _default_sync) -> type[BaseHTTPRequestHandler]:
    class _SyncHandler(BaseHTTPRequestHandler):
        def _respond(self, status: int, payload: dict[str, Any]) -> None:
            body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "application/json; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def _handle(self) -> None:
            if self.path.split("?", 1)[0] != SYNC_PATH:
                self._respond(404, {"success": False, "error": "Not found"})
                return
            status, payload = handle_sync_request(self.headers.get("Authorization"), secret, sync)
            self._respond(status, payload)

        def do_POST(self):
            self._handle()

        def do_GET(self):
            self._handle()

        def log_message(self, format, *args):
            logger.info("%s - %s", self.address_string(), format % args)

    return _SyncHandler


def main() -> None:
    parser = argparse.ArgumentParser(description="Feed sync HTTP trigger")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    args = parser.parse_args()

    setup_logging()
    secret = (os.getenv("INGEST_SECRET_KEY") or "").strip() or None
    if not secret:
        logger.warning("INGEST_SECRET_KEY is not set; every request will be rejected")
    server = HTTPServer((args.host, args.port), make_handler(secret))
    logger.info("listening on http://%s:%d%s", args.host, args.port, SYNC_PATH)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
