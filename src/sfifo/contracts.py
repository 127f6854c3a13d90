"""Handshake record contract exchanged while authenticating a FIFO peer."""

from __future__ import annotations

import secrets
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from sfifo.constants import MAX_RECORD_AGE_SECONDS, U32_MAX, U64_MAX
from sfifo.errors import AuthenticationError, StaleRecordError
from sfifo.identity import current_pid, current_process_name, current_timestamp


class HandshakeKind(StrEnum):
    """Position of a record in the Request → Response → Ack exchange."""

    REQUEST = "request"
    RESPONSE = "response"
    ACK = "ack"


class HandshakeRecord(BaseModel):
    """One handshake message, identifying the process that sent it.

    ``token`` is the shared secret itself; both peers must already hold it.
    Records are built fresh for every step and discarded after validation.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    process_id: int = Field(ge=0, le=U32_MAX, description="OS process id of the sender")
    process_name: str = Field(description="Display name of the sending process")
    token: str = Field(description="Shared authentication secret")
    timestamp: int = Field(ge=0, le=U64_MAX, description="Creation time, seconds since epoch")
    kind: HandshakeKind = Field(description="Handshake step this record belongs to")

    @classmethod
    def create(cls, token: str, kind: HandshakeKind) -> HandshakeRecord:
        """Stamp a new record with this process's identity and the current time."""
        return cls(
            process_id=current_pid(),
            process_name=current_process_name(),
            token=token,
            timestamp=current_timestamp(),
            kind=kind,
        )

    def age(self, now: int | None = None) -> int:
        """Seconds since the record was created; future timestamps count as zero."""
        current = current_timestamp() if now is None else now
        return max(current - self.timestamp, 0)

    def verify(
        self,
        expected_token: str,
        *,
        max_age: int = MAX_RECORD_AGE_SECONDS,
        now: int | None = None,
    ) -> None:
        """Check the token and the replay window.

        Raises:
            AuthenticationError: If the token differs from *expected_token*.
            StaleRecordError: If the record is older than *max_age* seconds.
        """
        if not secrets.compare_digest(self.token.encode(), expected_token.encode()):
            msg = "Invalid authentication token"
            raise AuthenticationError(msg)
        age = self.age(now)
        if age > max_age:
            raise StaleRecordError(age, max_age)


__all__ = ["HandshakeKind", "HandshakeRecord"]
