"""Hosts: timer services that drive a Runtime between suspensions."""

from klaw_strand.hosts.anyio_ import AnyioHost, serve
from klaw_strand.hosts.protocol import Host
from klaw_strand.hosts.virtual import VirtualHost, run

__all__ = [
    'AnyioHost',
    'Host',
    'VirtualHost',
    'run',
    'serve',
]
