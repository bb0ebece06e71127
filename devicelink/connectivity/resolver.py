"""
Host name resolution ahead of socket operations.
"""

import asyncio
import ipaddress
import logging
import socket

logger = logging.getLogger("devicelink.connectivity.resolver")


async def resolve_host(host: str, timeout: float = 2.0) -> str:
    """
    Resolve a host name to an IPv4 address.

    Literal IP addresses are returned unchanged. Any resolution failure
    falls back to the original host string so the caller can still try it.
    """
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        pass

    loop = asyncio.get_running_loop()
    try:
        infos = await asyncio.wait_for(
            loop.getaddrinfo(host, None, family=socket.AF_INET, type=socket.SOCK_STREAM),
            timeout=timeout,
        )
    except (OSError, asyncio.TimeoutError) as e:
        logger.debug("Could not resolve %s, using it as-is: %s", host, e)
        return host

    if not infos:
        return host

    address = infos[0][4][0]
    logger.debug("Resolved %s -> %s", host, address)
    return address
