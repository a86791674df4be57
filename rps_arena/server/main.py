# rps_arena/server/main.py
import argparse
import dataclasses
import socket
import threading
from typing import List, Optional

from rps_arena.common.logging_utils import setup_logging, get_logger
from rps_arena.server.config import ServerConfig
from rps_arena.server.dispatch import Dispatcher


log = get_logger("server.main")


def _create_tcp_listener(host: str, port: int) -> socket.socket:
    """
    Create a TCP listening socket. Port 0 lets the OS choose a free port
    (tests do that); read it back with getsockname().
    """
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    s.bind((host, port))
    s.listen()
    return s


def serve(listener: socket.socket, dispatcher: Dispatcher, stop_event: threading.Event) -> None:
    """Accept until stop_event is set; one daemon thread per client."""
    listener.settimeout(0.5)
    while not stop_event.is_set():
        try:
            conn, addr = listener.accept()
        except socket.timeout:
            continue
        except OSError as e:
            if stop_event.is_set():
                break
            log.warning(f"Accept failed: {e}")
            continue
        conn.settimeout(None)
        t_client = threading.Thread(
            target=dispatcher.handle_client,
            args=(conn, addr),
            name=f"client-{addr[0]}:{addr[1]}",
            daemon=True,
        )
        t_client.start()


def _parse_args(argv: Optional[List[str]], config: ServerConfig) -> ServerConfig:
    parser = argparse.ArgumentParser(description="Rock-paper-scissors match server")
    parser.add_argument("--host", default=config.host, help="interface to bind (default: all)")
    parser.add_argument("--port", type=int, default=config.port, help=f"TCP port (default: {config.port})")
    args = parser.parse_args(argv)
    return dataclasses.replace(config, host=args.host, port=args.port)


def main(argv: Optional[List[str]] = None) -> None:
    setup_logging()
    config = _parse_args(argv, ServerConfig.from_env())

    stop_event = threading.Event()
    dispatcher = Dispatcher(config)

    tcp_listener = _create_tcp_listener(config.host, config.port)
    tcp_port = tcp_listener.getsockname()[1]
    log.info(f"TCP listening on port {tcp_port} "
             f"(invite timeout {config.invite_timeout}s, move timeout {config.move_timeout}s)")
    print(f"Server started, listening on port {tcp_port}")

    try:
        serve(tcp_listener, dispatcher, stop_event)
    except KeyboardInterrupt:
        log.info("Shutting down...")
    finally:
        stop_event.set()
        tcp_listener.close()


if __name__ == "__main__":
    main()
