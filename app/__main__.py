"""Run the todos service with uvicorn."""

from __future__ import annotations

import os

import uvicorn

DEFAULT_PROCESS_HOST = "127.0.0.1"
DEFAULT_PROCESS_PORT = "18170"


def main() -> None:
    host = os.environ.get("TODOS_HOST", DEFAULT_PROCESS_HOST).strip() or DEFAULT_PROCESS_HOST
    port = int(os.environ.get("TODOS_PORT", DEFAULT_PROCESS_PORT).strip() or DEFAULT_PROCESS_PORT)
    uvicorn.run("app.main:app", host=host, port=port)


if __name__ == "__main__":
    main()
