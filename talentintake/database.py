"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for candidate storage. Identity columns (email,
profile handle) are stored in normalized form and are unique per tenant.
"""

from datetime import datetime
from pathlib import Path

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class CandidateRow(Base):
    """Stored candidate, one row per person per tenant."""

    __tablename__ = "candidates"
    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_candidate_tenant_email"),
        UniqueConstraint("tenant_id", "profile_handle", name="uq_candidate_tenant_handle"),
    )

    id = Column(String, primary_key=True)
    tenant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, index=True)
    alternate_email = Column(String)
    phone = Column(String)
    company = Column(String)
    current_company = Column(String)
    title = Column(String)
    headline = Column(String)
    location = Column(String)
    profile_handle = Column(String, index=True)
    summary = Column(Text)
    skills = Column(JSON, nullable=False, default=list)
    experience = Column(JSON, nullable=False, default=list)
    education = Column(JSON, nullable=False, default=list)
    certifications = Column(JSON, nullable=False, default=list)
    connections = Column(Integer)
    open_to_work = Column(Boolean)
    last_active = Column(Date)
    recent_activity = Column(JSON, nullable=False, default=list)

    score = Column(Float)
    priority_tier = Column(String)  # High, Medium, Low
    sub_scores = Column(JSON, nullable=False, default=dict)
    hireability_score = Column(Float)
    potential_to_join = Column(String)
    hireability_factors = Column(JSON, nullable=False, default=list)
    insights = Column(JSON, nullable=False, default=list)

    enrichment_status = Column(String, nullable=False, default="pending")
    last_enriched_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class TenantSettingsRow(Base):
    """Per-tenant scoring configuration."""

    __tablename__ = "tenant_settings"

    tenant_id = Column(String, primary_key=True)
    weights = Column(JSON, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


def create_db_engine(db_path: Path):
    """SQLite engine usable from several threads (each thread gets its own session)."""
    return create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=create_db_engine(db_path))
    return Session()
