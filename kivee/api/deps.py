"""
FastAPI dependencies (DB session, academy lookup, error mapping)
"""
from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from kivee.infrastructure.db.session import get_db as _get_db
from kivee.infrastructure.db.models import AcademyModel
from kivee.application.students import LedgerConflictError, StudentNotFoundError


# Re-export get_db for convenience
get_db = _get_db


def get_academy(academy_id: str, db: Session = Depends(get_db)) -> AcademyModel:
    """
    Resolve the academy from the path (tenant scope of every endpoint)

    Raises:
        HTTPException(404): unknown academy
    """
    academy = db.query(AcademyModel).filter(AcademyModel.id == academy_id).first()
    if not academy:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Academy not found"
        )
    return academy


def http_error(exc: Exception) -> HTTPException:
    """Translate a use case error into the HTTP error shown to staff."""
    if isinstance(exc, StudentNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, LedgerConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
