import argparse
import asyncio
import functools
import http
import logging
import signal
from typing import Optional

from websockets.asyncio.server import Server, ServerConnection, broadcast, serve
from websockets.exceptions import ConnectionClosedError
from websockets.http11 import Request, Response

import protocol
import settings
from relay import Relay
from shutdown import ShutdownCoordinator


logger = logging.getLogger(__name__)


class WebSocketChannel:
    def __init__(self, websocket: ServerConnection) -> None:
        self.websocket = websocket

    def deliver(self, frame: str) -> None:
        # Writes without awaiting and skips connections that are not open.
        broadcast([self.websocket], frame)


def plain_http(connection: ServerConnection, request: Request) -> Optional[Response]:
    """Answer requests that are not WebSocket upgrades."""
    if request.headers.get("Upgrade", "").lower() == "websocket":
        return None
    if request.path == "/":
        return connection.respond(http.HTTPStatus.OK, "Relay server is running\n")
    return connection.respond(http.HTTPStatus.NOT_FOUND, "Not Found\n")


def describe_close(websocket: ServerConnection) -> str:
    code = websocket.close_code
    if code is None:
        return "transport closed"
    return f"{code} {websocket.close_reason or ''}".strip()


async def handle_client(relay: Relay, websocket: ServerConnection) -> None:
    identity = str(websocket.id)
    relay.connect(identity, WebSocketChannel(websocket), websocket.remote_address)
    reason = None
    try:
        async for frame in websocket:
            try:
                event, data = protocol.decode_event(frame)
            except protocol.FrameError as exc:
                relay.transport_error(identity, exc)
                continue
            relay.dispatch(identity, event, data)
    except ConnectionClosedError as exc:
        reason = f"transport error: {exc}"
    finally:
        relay.disconnect(identity, reason or describe_close(websocket))


def serve_relay(relay: Relay, host: str, port: int, origins=None):
    allowed = list(settings.ALLOWED_ORIGINS if origins is None else origins)
    # Non-browser clients send no Origin header.
    allowed.append(None)
    return serve(
        functools.partial(handle_client, relay),
        host,
        port,
        process_request=plain_http,
        origins=allowed,
        ping_interval=settings.PING_INTERVAL,
        ping_timeout=settings.PING_TIMEOUT,
        max_size=settings.MAX_MESSAGE_SIZE,
    )


async def run(host: str, port: int) -> None:
    relay = Relay()
    coordinator = ShutdownCoordinator(relay)
    async with serve_relay(relay, host, port) as server:
        logger.info("Relay server listening on %s:%d", host, port)
        logger.info("Allowed origins: %s", ", ".join(map(str, settings.ALLOWED_ORIGINS)))
        # Run until a termination signal arrives
        stop = asyncio.Future()

        def _cancel() -> None:
            if not stop.done():
                stop.set_result(None)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, _cancel)
            except NotImplementedError:
                pass

        await stop
        await coordinator.drain(functools.partial(_close, server))


async def _close(server: Server) -> None:
    server.close()
    await server.wait_closed()


def main() -> None:
    parser = argparse.ArgumentParser(description="WebSocket chat relay server")
    parser.add_argument("--host", default=settings.HOST, help="Host to bind to (default: %(default)s)")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Port to listen on (default: %(default)s)")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="Logging level (default: %(default)s)")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s - %(levelname)s - %(message)s")
    asyncio.run(run(args.host, args.port))


if __name__ == "__main__":
    main()
