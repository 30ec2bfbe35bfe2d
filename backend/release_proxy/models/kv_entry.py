"""
Key-value entry model backing the durable store.

Each row is one key with an opaque string value and an absolute expiry
(epoch milliseconds). Rows past their expiry are treated as absent by
every read and are physically removed by purge_expired().

Expiry is kept as an integer rather than a timestamp column so the same
comparison works on Postgres and SQLite.
"""

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from release_proxy.core.database import Base


class KVEntry(Base):
    """One key of the durable key-value store."""

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(
        String(512),
        primary_key=True,
    )
    value: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    expires_at_ms: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<KVEntry key={self.key!r} expires_at_ms={self.expires_at_ms}>"
