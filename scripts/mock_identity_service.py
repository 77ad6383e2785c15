#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import time
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

VALIDATE_PATH = "/v1/auth/validate"
TOKEN_TTL_SECONDS = 3600


def claims_for_token(token: str, *, now: int | None = None) -> dict[str, object] | None:
    issued_at = int(time.time()) if now is None else now
    if token == "teacher-token":
        return {
            "user_id": "11111111-1111-1111-1111-111111111111",
            "username": "teacher",
            "role": "teacher",
            "iat": issued_at,
            "exp": issued_at + TOKEN_TTL_SECONDS,
        }
    if token == "student-token":
        return {
            "user_id": "22222222-2222-2222-2222-222222222222",
            "username": "student",
            "role": "student",
            "iat": issued_at,
            "exp": issued_at + TOKEN_TTL_SECONDS,
        }
    return None


class MockIdentityHandler(BaseHTTPRequestHandler):
    server_version = "MockIdentity/1.0"

    def do_GET(self) -> None:  # noqa: N802 - stdlib handler signature
        if self.path == "/healthz":
            self._write_json(HTTPStatus.OK, {"status": "ok"})
            return

        if self.path != VALIDATE_PATH:
            self._write_json(HTTPStatus.NOT_FOUND, {"message": "not found"})
            return

        authorization = self.headers.get("Authorization", "")
        if not authorization.lower().startswith("bearer "):
            self._write_json(HTTPStatus.UNAUTHORIZED, {"message": "missing bearer token"})
            return

        token = authorization.split(" ", maxsplit=1)[1].strip()
        claims = claims_for_token(token)
        if claims is None:
            self._write_json(HTTPStatus.UNAUTHORIZED, {"message": "invalid token"})
            return

        self._write_json(HTTPStatus.OK, {"data": claims})

    def log_message(self, _: str, *args: object) -> None:
        if args:
            print("mock-identity:", *args)

    def _write_json(self, status: HTTPStatus, payload: dict[str, object]) -> None:
        raw = json.dumps(payload).encode("utf-8")
        self.send_response(status.value)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)


def main() -> None:
    parser = argparse.ArgumentParser(description=f"Mock identity service answering {VALIDATE_PATH}.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    args = parser.parse_args()

    server = ThreadingHTTPServer((args.host, args.port), MockIdentityHandler)
    print(f"mock-identity listening on http://{args.host}:{args.port}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
