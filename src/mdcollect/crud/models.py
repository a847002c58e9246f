"""Database table definitions for the compiled-body cache"""

from datetime import datetime
from typing import Any, List, Dict

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON, Text, String, UniqueConstraint


class CompiledEntry(SQLModel, table=True):
    """Compiled HTML for one body text under one compiler configuration"""
    __tablename__ = "compiled_bodies"
    __table_args__ = (UniqueConstraint("content_hash", "fingerprint", name="uq_compiled_hash_fp"),)
    id: int | None = Field(default=None, primary_key=True)
    content_hash: str = Field(..., sa_column=Column(String(64), nullable=False, index=True))
    fingerprint: str = Field(..., sa_column=Column(String(64), nullable=False))
    html: str = Field(..., sa_column=Column(Text, nullable=False))
    headings: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=datetime.now, sa_column=Column(DateTime(timezone=False), nullable=False))
