from __future__ import annotations

import struct

import pytest
from hypothesis import given
from hypothesis import strategies as st

from sfifo.constants import MAX_FRAME_BYTES, U32_MAX, U64_MAX
from sfifo.contracts import HandshakeKind, HandshakeRecord
from sfifo.errors import DataFormatError, EndOfStreamError
from sfifo.framing import (
    decode_record,
    encode_frame,
    encode_record,
    parse_frame_header,
    read_record,
    write_record,
)


class _BufferSource:
    """In-memory stand-in for a receive endpoint that records read sizes."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self.requested: list[int] = []

    async def read_exact(self, size: int) -> bytes:
        self.requested.append(size)
        if len(self._data) < size:
            raise EndOfStreamError(size, len(self._data))
        chunk, self._data = self._data[:size], self._data[size:]
        return chunk


class _BufferSink:
    def __init__(self) -> None:
        self.data = bytearray()

    async def write_all(self, data: bytes) -> None:
        self.data += data


def _record(**overrides: object) -> HandshakeRecord:
    fields: dict[str, object] = {
        "process_id": 4242,
        "process_name": "worker",
        "token": "secret",
        "timestamp": 1_700_000_000,
        "kind": HandshakeKind.REQUEST,
    }
    fields.update(overrides)
    return HandshakeRecord(**fields)


@given(
    process_id=st.integers(min_value=0, max_value=U32_MAX),
    process_name=st.text(max_size=64),
    token=st.text(max_size=256),
    timestamp=st.integers(min_value=0, max_value=U64_MAX),
    kind=st.sampled_from(list(HandshakeKind)),
)
def test_frame_round_trip_preserves_every_field(
    process_id: int,
    process_name: str,
    token: str,
    timestamp: int,
    kind: HandshakeKind,
) -> None:
    record = _record(
        process_id=process_id,
        process_name=process_name,
        token=token,
        timestamp=timestamp,
        kind=kind,
    )
    frame = encode_frame(record)

    length = parse_frame_header(frame[:4])
    assert length == len(frame) - 4
    assert decode_record(frame[4:]) == record


def test_frame_header_is_little_endian_payload_length() -> None:
    record = _record()
    frame = encode_frame(record)
    assert frame[:4] == struct.pack("<I", len(encode_record(record)))


def test_parse_frame_header_rejects_truncated_header() -> None:
    with pytest.raises(DataFormatError, match="4 bytes"):
        parse_frame_header(b"\x01\x00")


def test_parse_frame_header_accepts_exactly_the_cap() -> None:
    assert parse_frame_header(struct.pack("<I", MAX_FRAME_BYTES)) == MAX_FRAME_BYTES


@pytest.mark.asyncio
async def test_oversized_length_is_rejected_before_reading_payload() -> None:
    source = _BufferSource(struct.pack("<I", MAX_FRAME_BYTES + 1) + b"x" * 16)

    with pytest.raises(DataFormatError, match="too large"):
        await read_record(source)

    assert source.requested == [4]


@pytest.mark.asyncio
async def test_malformed_payload_is_a_data_format_error() -> None:
    payload = b'{"process_id": "not a number"}'
    source = _BufferSource(struct.pack("<I", len(payload)) + payload)

    with pytest.raises(DataFormatError, match="Malformed"):
        await read_record(source)


@pytest.mark.asyncio
async def test_truncated_payload_surfaces_end_of_stream() -> None:
    frame = encode_frame(_record())
    source = _BufferSource(frame[:-3])

    with pytest.raises(EndOfStreamError):
        await read_record(source)


@pytest.mark.asyncio
async def test_write_then_read_record_through_buffers() -> None:
    record = _record(kind=HandshakeKind.ACK)
    sink = _BufferSink()

    await write_record(sink, record)
    assert await read_record(_BufferSource(bytes(sink.data))) == record


def test_encode_frame_refuses_records_over_the_cap() -> None:
    with pytest.raises(DataFormatError, match="too large"):
        encode_frame(_record(token="t" * (MAX_FRAME_BYTES + 1)))


def test_decode_record_rejects_out_of_range_pid() -> None:
    payload = _record().model_dump_json().replace("4242", str(U32_MAX + 1)).encode()
    with pytest.raises(DataFormatError):
        decode_record(payload)


def test_decode_record_rejects_unknown_fields() -> None:
    payload = _record().model_dump_json()[:-1] + ',"role":"admin"}'
    with pytest.raises(DataFormatError):
        decode_record(payload.encode())
