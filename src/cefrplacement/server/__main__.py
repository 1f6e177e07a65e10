"""Run the placement server over stdin/stdout.

Usage: python -m cefrplacement.server

Requests arrive one JSON object per line on stdin; responses and
``levelChanged`` notifications are written to stdout. Logs go to stderr,
at the level named by CEFRPLACEMENT_LOG_LEVEL (default INFO).
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import AsyncIterator, Callable

from .handler import ServerHandler
from .protocol import ProtocolError, Request, Response

logger = logging.getLogger("cefrplacement.server")


async def handle_line(handler: ServerHandler, line: str) -> Response:
    """Turn one request line into its response. Never raises."""
    try:
        request = Request.parse_line(line)
    except ProtocolError as e:
        logger.warning("rejected request line: %s", e)
        return Response.from_exception(0, e)

    try:
        result = await handler.dispatch(request.to_dict())
    except Exception as e:
        logger.error("%s failed: %s", request.method, e)
        return Response.from_exception(request.id, e)
    return Response(id=request.id, result=result)


async def serve(
    handler: ServerHandler,
    lines: AsyncIterator[str],
    write_line: Callable[[str], None],
) -> int:
    """Answer requests until ``lines`` runs out. Returns the number handled."""
    handled = 0
    async for raw in lines:
        line = raw.strip()
        if not line:
            continue
        response = await handle_line(handler, line)
        write_line(response.to_json_line())
        handled += 1
    return handled


async def _stdin_lines() -> AsyncIterator[str]:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    while True:
        line = await reader.readline()
        if not line:
            return
        yield line.decode("utf-8", errors="replace")


def _write_stdout(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


async def main() -> None:
    handler = ServerHandler(
        write_notification=lambda n: _write_stdout(n.to_json_line()),
    )
    logger.info("placement server ready, results in %s", handler.results.db_path)
    handled = await serve(handler, _stdin_lines(), _write_stdout)
    logger.info("stdin closed after %d requests", handled)


if __name__ == "__main__":
    logging.basicConfig(
        stream=sys.stderr,
        level=os.environ.get("CEFRPLACEMENT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main())
