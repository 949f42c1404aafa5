import socket


def _as_host_port(addr: object) -> tuple[str, int] | None:
    # AF_INET gives (host, port), AF_INET6 (host, port, flowinfo, scope_id).
    if isinstance(addr, tuple) and len(addr) >= 2:
        return str(addr[0]), int(addr[1])
    return None


def get_remote_addr(sock: socket.socket) -> tuple[str, int] | None:
    try:
        return _as_host_port(sock.getpeername())
    except OSError:
        return None


def get_local_addr(sock: socket.socket) -> tuple[str, int] | None:
    try:
        return _as_host_port(sock.getsockname())
    except OSError:
        return None


def format_addr(addr: tuple[str, int] | None) -> str:
    return "%s:%d" % addr if addr else "-"
