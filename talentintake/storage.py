"""
Candidate storage on top of the SQLAlchemy schema.

The store converts between CandidateRow and CandidateRecord, scopes every
query to a tenant, and serializes writes that touch the same identity so two
batches submitting the same person cannot both create a record.
"""

import threading
import uuid
from contextlib import ExitStack, contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .database import CandidateRow, TenantSettingsRow, create_db_engine, init_database
from .errors import IdentityConflictError, PersistenceError
from .logger import get_logger
from .models import CandidateRecord, ScoringWeights
from .normalize import normalize_email, normalize_profile_handle

logger = get_logger()

RECORD_COLUMNS = (
    "tenant_id",
    "name",
    "email",
    "alternate_email",
    "phone",
    "company",
    "current_company",
    "title",
    "headline",
    "location",
    "profile_handle",
    "summary",
    "skills",
    "experience",
    "education",
    "certifications",
    "connections",
    "open_to_work",
    "last_active",
    "recent_activity",
    "score",
    "priority_tier",
    "sub_scores",
    "hireability_score",
    "potential_to_join",
    "hireability_factors",
    "insights",
    "enrichment_status",
    "last_enriched_at",
)


def _to_record(row: CandidateRow) -> CandidateRecord:
    values = {col: getattr(row, col) for col in RECORD_COLUMNS}
    for col in ("skills", "experience", "education", "certifications",
                "recent_activity", "hireability_factors", "insights"):
        values[col] = list(values[col] or [])
    values["sub_scores"] = dict(values["sub_scores"] or {})
    return CandidateRecord(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        **values,
    )


def _apply(row: CandidateRow, record: CandidateRecord) -> None:
    for col in RECORD_COLUMNS:
        setattr(row, col, getattr(record, col))
    row.email = normalize_email(record.email)
    row.profile_handle = normalize_profile_handle(record.profile_handle)
    row.updated_at = datetime.now()


class CandidateStore:
    """Tenant-scoped persistence for candidates and scoring weights."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        init_database(self.db_path)
        self._engine = create_db_engine(self.db_path)
        self._Session = sessionmaker(bind=self._engine, expire_on_commit=False)
        self._locks: Dict[Tuple[str, str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def close(self) -> None:
        self._engine.dispose()

    @contextmanager
    def _session(self):
        session = self._Session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Database operation failed", error=str(e), db=str(self.db_path))
            raise PersistenceError(f"Database error: {e.__class__.__name__}: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _identity_lock(self, key: Tuple[str, str, str]) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    @contextmanager
    def _identity_locks(self, tenant_id: str, email: Optional[str], handle: Optional[str]):
        keys = []
        if email:
            keys.append((tenant_id, "email", email))
        if handle:
            keys.append((tenant_id, "handle", handle))
        with ExitStack() as stack:
            # fixed order so two writers never wait on each other crosswise
            for key in sorted(keys):
                stack.enter_context(self._identity_lock(key))
            yield

    # Reads

    def find_by_identity(
        self,
        tenant_id: str,
        email: Optional[str] = None,
        profile_handle: Optional[str] = None,
    ) -> Optional[CandidateRecord]:
        """
        Find the tenant's candidate matching every identity value given.

        With both email and handle, only a record carrying both matches.
        Returns None when nothing matches or no identity value is given.
        """
        email = normalize_email(email)
        profile_handle = normalize_profile_handle(profile_handle)
        if not email and not profile_handle:
            return None
        with self._session() as session:
            query = session.query(CandidateRow).filter(CandidateRow.tenant_id == tenant_id)
            if email:
                query = query.filter(CandidateRow.email == email)
            if profile_handle:
                query = query.filter(CandidateRow.profile_handle == profile_handle)
            row = query.first()
            return _to_record(row) if row is not None else None

    def get(self, tenant_id: str, candidate_id: str) -> Optional[CandidateRecord]:
        with self._session() as session:
            row = session.get(CandidateRow, candidate_id)
            if row is None or row.tenant_id != tenant_id:
                return None
            return _to_record(row)

    def list_candidates(
        self,
        tenant_id: str,
        limit: int = 50,
        offset: int = 0,
        priority: Optional[str] = None,
    ) -> List[CandidateRecord]:
        """Tenant's candidates, best score first (unscored last)."""
        with self._session() as session:
            query = session.query(CandidateRow).filter(CandidateRow.tenant_id == tenant_id)
            if priority:
                query = query.filter(CandidateRow.priority_tier == priority)
            rows = (
                query.order_by(CandidateRow.score.desc(), CandidateRow.name)
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [_to_record(r) for r in rows]

    def count(self, tenant_id: str) -> int:
        with self._session() as session:
            return session.query(CandidateRow).filter(CandidateRow.tenant_id == tenant_id).count()

    # Writes

    def upsert(self, tenant_id: str, record: CandidateRecord) -> CandidateRecord:
        """
        Insert or update a candidate and return the stored version.

        Records without an id are inserted. If a stored candidate already has
        the record's email or handle, nothing is written: the record was merged
        without that candidate and must be merged again against it.

        Raises:
            IdentityConflictError: a new record collides with a stored candidate
            PersistenceError: database failure or record belongs to another tenant
        """
        if record.tenant_id != tenant_id:
            raise PersistenceError(
                f"Record tenant '{record.tenant_id}' does not match '{tenant_id}'"
            )
        email = normalize_email(record.email)
        handle = normalize_profile_handle(record.profile_handle)

        with self._identity_locks(tenant_id, email, handle):
            with self._session() as session:
                row = None
                if record.id:
                    row = session.get(CandidateRow, record.id)
                    if row is None or row.tenant_id != tenant_id:
                        raise PersistenceError(f"Candidate {record.id} not found for tenant {tenant_id}")
                elif email or handle:
                    clauses = []
                    if email:
                        clauses.append(CandidateRow.email == email)
                    if handle:
                        clauses.append(CandidateRow.profile_handle == handle)
                    row = (
                        session.query(CandidateRow)
                        .filter(CandidateRow.tenant_id == tenant_id, or_(*clauses))
                        .first()
                    )
                    if row is not None:
                        logger.warning(
                            "New candidate collides with stored identity",
                            tenant_id=tenant_id,
                            candidate_id=row.id,
                        )
                        raise IdentityConflictError(
                            f"Candidate {row.id} already holds this email or profile handle",
                            existing=_to_record(row),
                        )

                if row is None:
                    row = CandidateRow(id=uuid.uuid4().hex, created_at=datetime.now())
                    session.add(row)
                _apply(row, record)
                session.flush()
                return _to_record(row)

    # Tenant settings

    def get_weights(self, tenant_id: str) -> Optional[ScoringWeights]:
        with self._session() as session:
            row = session.get(TenantSettingsRow, tenant_id)
            if row is None:
                return None
            return ScoringWeights.from_dict(row.weights)

    def set_weights(self, tenant_id: str, weights: ScoringWeights) -> ScoringWeights:
        weights = weights.validated()
        with self._session() as session:
            row = session.get(TenantSettingsRow, tenant_id)
            if row is None:
                row = TenantSettingsRow(tenant_id=tenant_id)
                session.add(row)
            row.weights = weights.to_dict()
            row.updated_at = datetime.now()
        return weights
