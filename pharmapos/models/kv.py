from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class KeyValueRecord(Base):
    """One JSON document stored under a fixed key.

    ``version`` starts at 1 and grows by one on every write. Writers pass the
    version they read and the UPDATE only matches that version, so a write
    based on a stale read touches no row and is rejected.
    """

    __tablename__ = "kv_records"

    key = Column(Text, primary_key=True)
    value = Column(Text, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(Text, nullable=False)
