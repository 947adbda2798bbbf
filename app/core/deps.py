"""
FastAPI dependencies: DB session, authenticated employee, role guard and the
active office geofence.
"""
from typing import Generator
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.db.session import SessionLocal
from app.core.security import decode_token
from app.models.employee import Employee, Role
from app.schemas.office_settings import OfficeSettingsSnapshot
from app.services.office_settings_service import get_office_settings


security = HTTPBearer()


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _employee_id_from_token(token: str) -> int:
    try:
        sub_value = decode_token(token).get("sub")
        if sub_value is None:
            raise _unauthorized("Invalid authentication credentials")
        # JWT sub is a string
        return int(sub_value)
    except (ValueError, TypeError):
        raise _unauthorized("Invalid authentication credentials")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Employee:
    """
    Employee identified by the bearer token. Attendance endpoints always act on
    this employee; there is no acting on behalf of someone else.
    """
    employee_id = _employee_id_from_token(credentials.credentials)

    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise _unauthorized("User not found")
    if not employee.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return employee


def require_roles(*allowed_roles: Role):
    """
    Dependency factory for role-based access control. ADMIN passes every guard.

    Usage:
        @router.get("/today")
        async def today(user: Employee = Depends(require_roles(Role.MANAGER, Role.HR))):
            ...
    """
    def role_checker(current_user: Employee = Depends(get_current_user)) -> Employee:
        if current_user.role == Role.ADMIN or current_user.role in allowed_roles:
            return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
        )
    return role_checker


def get_office(db: Session = Depends(get_db)) -> OfficeSettingsSnapshot:
    """Office geofence in effect for this request (latest settings row or config defaults)."""
    return get_office_settings(db)
