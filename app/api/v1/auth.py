"""
Authentication endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.core.deps import get_db
from app.core.security import verify_password, create_access_token
from app.models.employee import Employee
from app.schemas.auth import LoginRequest, TokenResponse
from app.services.audit_service import try_log_audit

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return JWT token

    Validates emp_code and password, rejects inactive employees.
    Returns access token with employee_id, emp_code and role.
    """
    employee = db.query(Employee).filter(Employee.emp_code == login_data.emp_code).first()

    if not employee:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid employee code or password"
        )

    if not employee.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    # Handle case where employee has no password set
    if employee.password_hash is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No password set for this account"
        )

    if not verify_password(login_data.password, employee.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid employee code or password"
        )

    # Note: JWT 'sub' claim must be a string per JWT spec
    token_data = {
        "sub": str(employee.id),
        "emp_code": employee.emp_code,
        "role": employee.role,
    }
    access_token = create_access_token(data=token_data)

    # Don't fail login if audit fails
    try_log_audit(
        db,
        actor_id=employee.id,
        action="AUTH_LOGIN_SUCCESS",
        entity_type="auth",
        entity_id=None,
        meta={"emp_code": employee.emp_code, "role": employee.role},
    )

    return TokenResponse(access_token=access_token, token_type="bearer")
