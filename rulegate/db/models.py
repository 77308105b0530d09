# rulegate/db/models.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

from rulegate.rules.types import EvaluationLogic

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RuleGroupRecord(Base):
    __tablename__ = "rule_groups"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    priority = Column(Integer, default=0, nullable=False, index=True)
    evaluation_logic = Column(String(16), default=EvaluationLogic.ANY.value, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # удаление группы уносит её правила
    rules = relationship(
        "RuleRecord",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="RuleRecord.id",
    )


class RuleRecord(Base):
    __tablename__ = "rules"
    id = Column(Integer, primary_key=True)
    rule_group_id = Column(
        Integer,
        ForeignKey("rule_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    expression = Column(Text, nullable=False)
    priority = Column(Integer, default=0, nullable=False, index=True)
    action_type = Column(String(255), nullable=True)      # NULL = без действия
    action_value = Column(JSON, nullable=True)
    error_message = Column(String(255), nullable=True)
    active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    group = relationship("RuleGroupRecord", back_populates="rules")
