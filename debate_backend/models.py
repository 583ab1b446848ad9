"""
SQLAlchemy models for the debate store.

Three tables: debates, their blocks, and each block's append-only text
history. Ids are UUID strings so the same schema runs on SQLite and Postgres.
"""

from sqlalchemy import (
    Column, String, Integer, Boolean, Text, DateTime,
    ForeignKey, Index,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class DebateRecord(Base):
    """Top-level debate container"""
    __tablename__ = "debates"

    id = Column(String(36), primary_key=True)
    resolved = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index('idx_debates_updated', 'updated_at'),
    )


class DebateBlockRecord(Base):
    """One opening statement or objection"""
    __tablename__ = "debate_blocks"

    id = Column(String(36), primary_key=True)
    debate_id = Column(String(36), ForeignKey('debates.id', ondelete='CASCADE'), nullable=False)
    parent_id = Column(String(36))  # lookup only; the debate owns the block

    # Position
    depth = Column(Integer, nullable=False, default=0)
    order_index = Column(Integer, nullable=False, default=0)
    static_number = Column(String(255), nullable=False)
    last_child_number = Column(Integer, nullable=False, default=0)

    # Content
    text = Column(Text, nullable=False)
    category = Column(Text)

    # Soft delete
    disabled = Column(Boolean, nullable=False, default=False)
    disabled_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_debate_blocks_debate', 'debate_id'),
        Index('idx_debate_blocks_parent', 'debate_id', 'parent_id'),
    )


class DebateBlockHistoryRecord(Base):
    """A replaced text value, oldest first by position"""
    __tablename__ = "debate_block_history"

    id = Column(String(36), primary_key=True)
    block_id = Column(String(36), ForeignKey('debate_blocks.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_debate_block_history_block', 'block_id', 'position'),
    )
