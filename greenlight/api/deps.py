from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from greenlight.core.approval import GreenlightService
from greenlight.core.config import get_settings
from greenlight.db.session import SessionLocal
from greenlight.db.stores import SqlAuditLogSink, SqlProjectRecordStore


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_identity(request: Request) -> str:
    """Email of the acting user, as resolved by the upstream auth layer."""
    header = get_settings().identity_header
    identity = request.headers.get(header, "").strip()
    if not identity:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {header} header",
        )
    return identity


def get_greenlight_service(db: Session = Depends(get_db)) -> GreenlightService:
    """Greenlight service bound to the request's database session."""
    return GreenlightService(SqlProjectRecordStore(db), SqlAuditLogSink(db))
