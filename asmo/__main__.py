from __future__ import annotations

import logging
import socket

import psutil
import uvicorn

from asmo.config import settings

logger = logging.getLogger("asmo")


def local_address() -> str:
    """First non-loopback IPv4 address, for the startup banner."""
    for addrs in psutil.net_if_addrs().values():
        for addr in addrs:
            if addr.family == socket.AF_INET and not addr.address.startswith("127."):
                return addr.address
    return "localhost"


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("%s running on http://%s:%d", settings.app_name, local_address(), settings.port)
    logger.info("GET / for all available endpoints")
    uvicorn.run("asmo.main:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
