"""Local Tor daemon discovery.

This module finds listening TCP sockets that belong to running Tor processes,
which is usually enough to tell where the control port (and SOCKS port) of a
local daemon live.

Example:
    for listener in find_control_listeners():
        print(f"tor[{listener.pid}] listening on {listener.ip}:{listener.port}")
"""

import socket
from dataclasses import dataclass

import psutil
from loguru import logger

TOR_PROCESS_NAMES = ("tor", "tor.exe")


@dataclass
class TorListener:
    """A listening socket owned by a Tor process.

    Attributes:
        pid: Process id of the daemon
        name: Process name
        ip: Local address the socket is bound to
        port: Local port
    """

    pid: int
    name: str
    ip: str
    port: int


def _tor_processes() -> dict[int, str]:
    processes = {}
    for proc in psutil.process_iter(["pid", "name"]):
        name = proc.info.get("name") or ""
        if name.lower() in TOR_PROCESS_NAMES:
            processes[proc.info["pid"]] = name
    return processes


def find_control_listeners() -> list[TorListener]:
    """Return the listening TCP sockets of all local Tor processes."""
    processes = _tor_processes()
    if not processes:
        logger.debug("No running tor process found")
        return []

    listeners = []
    for pid, name in processes.items():
        try:
            connections = psutil.Process(pid).net_connections(kind="tcp")
        except (psutil.AccessDenied, psutil.NoSuchProcess) as e:
            logger.debug(f"Cannot inspect tor process {pid}: {e}")
            continue

        for conn in connections:
            if conn.status != psutil.CONN_LISTEN or conn.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            listeners.append(TorListener(pid=pid, name=name, ip=conn.laddr.ip, port=conn.laddr.port))

    return sorted(listeners, key=lambda listener: (listener.pid, listener.port))
