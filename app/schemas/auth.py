"""
Login payloads. The bearer token identifies the employee whose attendance the
punch, heartbeat and status endpoints act on.
"""
from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    emp_code: str = Field(..., min_length=1, description="Employee code, e.g. EMP001")
    password: str = Field(..., min_length=1, description="Password")


class TokenResponse(BaseModel):
    """JWT whose `sub` is the employee id"""
    access_token: str
    token_type: str = "bearer"
