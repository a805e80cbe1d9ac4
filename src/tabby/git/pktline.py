"""Git pkt-line framing.

A pkt-line is four lowercase hex digits giving the total length (the four
digits included) followed by the payload.  ``0000`` is the flush packet: it
carries no payload and marks the end of a section.
"""

from __future__ import annotations

from collections.abc import Iterator

from tabby._errors import ProtocolDecodeError

FLUSH_PKT = b"0000"
HEADER_SIZE = 4
MAX_PKT_SIZE = 65520
MAX_PAYLOAD_SIZE = MAX_PKT_SIZE - HEADER_SIZE


def pkt_line(payload: str | bytes) -> bytes:
    """Frame ``payload`` as one pkt-line.

    Raises:
        ValueError: If the payload is too large for a single packet.

    """
    data = payload.encode("utf-8") if isinstance(payload, str) else payload
    if len(data) > MAX_PAYLOAD_SIZE:
        msg = f"pkt-line payload too large: {len(data)} > {MAX_PAYLOAD_SIZE}"
        raise ValueError(msg)
    return f"{len(data) + HEADER_SIZE:04x}".encode("ascii") + data


def service_header(service: str) -> bytes:
    """The ``# service=...`` packet plus flush that opens an advertisement."""
    return pkt_line(f"# service={service}\n") + FLUSH_PKT


def read_pkt_lines(data: bytes) -> Iterator[bytes | None]:
    """Split ``data`` into pkt-line payloads; flush packets yield None.

    Raises:
        ProtocolDecodeError: On a malformed or truncated length prefix.

    """
    pos = 0
    while pos < len(data):
        header = data[pos:pos + HEADER_SIZE]
        if len(header) < HEADER_SIZE:
            msg = f"truncated pkt-line header at offset {pos}"
            raise ProtocolDecodeError(msg)
        try:
            length = int(header, 16)
        except ValueError:
            msg = f"invalid pkt-line length {header!r} at offset {pos}"
            raise ProtocolDecodeError(msg) from None
        if length == 0:
            yield None
            pos += HEADER_SIZE
            continue
        if length < HEADER_SIZE:
            msg = f"invalid pkt-line length {length} at offset {pos}"
            raise ProtocolDecodeError(msg)
        end = pos + length
        if end > len(data):
            msg = f"truncated pkt-line at offset {pos}: need {length} bytes"
            raise ProtocolDecodeError(msg)
        yield data[pos + HEADER_SIZE:end]
        pos = end


def unframe(data: bytes) -> bytes:
    """Inverse of ``pkt_line`` for exactly one data packet.

    Raises:
        ProtocolDecodeError: If ``data`` is not exactly one data packet.

    """
    packets = list(read_pkt_lines(data))
    if len(packets) != 1 or packets[0] is None:
        msg = "expected exactly one data pkt-line"
        raise ProtocolDecodeError(msg)
    return packets[0]
