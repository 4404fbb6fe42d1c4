"""
Append-only audit trail. One row per mutated record, written in the same transaction as the mutation.
"""

from sqlalchemy import JSON, Column, String, Text
from sqlalchemy.dialects.postgresql import JSONB

from erp.db.session import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class AuditLog(Base):
    __tablename__ = "audit_log"
    __table_args__ = {"info": {"sheet": "AuditLog", "key": "log_id", "append_only": True}}

    log_id = Column(String(64), primary_key=True)
    table_name = Column(String(50), nullable=False, index=True)
    entity_id = Column(String(64), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    user_id = Column(String(64), nullable=False, default="system")
    timestamp = Column(String(40), nullable=False)
    before = Column(JSONType, nullable=True)
    after = Column(JSONType, nullable=True)
    diff = Column(Text, nullable=False, default="")
    notes = Column(Text, nullable=False, default="")
