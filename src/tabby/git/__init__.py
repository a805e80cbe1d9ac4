"""Git Smart HTTP bridge (upload-pack only)."""

from tabby.git.bridge import GitBridge, gunzip_stream
from tabby.git.pktline import FLUSH_PKT, pkt_line, read_pkt_lines, unframe

__all__ = [
    "FLUSH_PKT",
    "GitBridge",
    "gunzip_stream",
    "pkt_line",
    "read_pkt_lines",
    "unframe",
]
