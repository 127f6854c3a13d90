"""Length-prefixed wire form for handshake records.

A frame is ``[u32 little-endian payload length][payload]``. The payload is the
record's JSON form. Lengths above ``MAX_FRAME_BYTES`` are rejected before any
payload byte is read so a hostile peer cannot make us buffer arbitrary data.
"""

from __future__ import annotations

import struct
from typing import TYPE_CHECKING, Protocol

from pydantic import ValidationError

from sfifo.constants import FRAME_HEADER_BYTES, MAX_FRAME_BYTES
from sfifo.contracts import HandshakeRecord
from sfifo.errors import DataFormatError

_HEADER = struct.Struct("<I")

if TYPE_CHECKING:

    class FrameSource(Protocol):
        async def read_exact(self, size: int) -> bytes: ...

    class FrameSink(Protocol):
        async def write_all(self, data: bytes) -> None: ...


def encode_record(record: HandshakeRecord) -> bytes:
    return record.model_dump_json().encode("utf-8")


def decode_record(payload: bytes) -> HandshakeRecord:
    """Parse a payload produced by :func:`encode_record`.

    Raises:
        DataFormatError: If the payload is not a valid record.
    """
    try:
        return HandshakeRecord.model_validate_json(payload)
    except ValidationError as exc:
        msg = f"Malformed handshake record: {exc.error_count()} validation error(s)"
        raise DataFormatError(msg) from exc


def encode_frame(record: HandshakeRecord) -> bytes:
    payload = encode_record(record)
    if len(payload) > MAX_FRAME_BYTES:
        msg = f"Handshake record too large ({len(payload)} > {MAX_FRAME_BYTES} bytes)"
        raise DataFormatError(msg)
    return _HEADER.pack(len(payload)) + payload


def parse_frame_header(header: bytes) -> int:
    """Return the payload length advertised by *header*.

    Raises:
        DataFormatError: If the header is truncated or the length exceeds the cap.
    """
    if len(header) != FRAME_HEADER_BYTES:
        msg = f"Frame header must be {FRAME_HEADER_BYTES} bytes, got {len(header)}"
        raise DataFormatError(msg)
    (length,) = _HEADER.unpack(header)
    if length > MAX_FRAME_BYTES:
        msg = f"Handshake record too large ({length} > {MAX_FRAME_BYTES} bytes)"
        raise DataFormatError(msg)
    return length


async def read_record(source: FrameSource) -> HandshakeRecord:
    """Read one framed record.

    Raises:
        EndOfStreamError: If the writer closed the pipe mid-frame or before it.
        DataFormatError: For oversized or malformed frames.
    """
    length = parse_frame_header(await source.read_exact(FRAME_HEADER_BYTES))
    return decode_record(await source.read_exact(length))


async def write_record(sink: FrameSink, record: HandshakeRecord) -> None:
    await sink.write_all(encode_frame(record))


__all__ = [
    "decode_record",
    "encode_frame",
    "encode_record",
    "parse_frame_header",
    "read_record",
    "write_record",
]
