"""Executable entrypoint for the dashboard API."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv


def main() -> None:
    load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")
    logging.basicConfig(
        level=os.getenv("EDULEAD_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "api.main:app",
        host=os.getenv("EDULEAD_HOST", "127.0.0.1"),
        port=int(os.getenv("EDULEAD_PORT", "8000")),
        workers=1,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
