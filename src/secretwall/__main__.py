# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""secretwall entrypoint.

Run with:
  python -m secretwall
"""

import logging
import os

import uvicorn
from dotenv import load_dotenv


def main() -> None:
    load_dotenv()
    level = os.getenv("SECRETWALL_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    host = os.getenv("SECRETWALL_HOST", "0.0.0.0")
    port = int(os.getenv("SECRETWALL_PORT", "8000"))
    reload = os.getenv("SECRETWALL_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("secretwall.app:create_app", factory=True, host=host, port=port, reload=reload)

if __name__ == "__main__":
    main()
