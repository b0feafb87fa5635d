"""Websocket table host that drives the betting engine."""

from .server import HostServer

__all__ = ["HostServer"]
