"""
ResiHub Backend — Auth Request/Response Schemas
=================================================

What:  Pydantic models for the login contract and the shared message bodies.
How:   Field names match the JSON the mobile and web clients already consume
       (camelCase `apartmentComplexName`).
"""

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """
    Body of POST /api/auth/login.

    Both fields are optional at the schema level so that a missing value is
    reported as "Email and password are required" (400) by the login flow
    instead of FastAPI's generic 422.
    """
    email: Optional[str] = Field(default=None, description="Account email")
    password: Optional[str] = Field(default=None, description="Plaintext password")


class UserView(BaseModel):
    """Public projection of a logged-in identity. Never carries the password hash."""
    id: str
    name: str
    email: str
    apartmentComplexName: Optional[str] = Field(
        default=None,
        description="Apartment the user belongs to; null for central accounts",
    )
    role: str = Field(description="ServiceProvider, Resident or Manager")
    status: Optional[str] = Field(
        default=None,
        description="pending, approved or rejected; null for service providers",
    )
    phone: Optional[str] = None


class LoginResponse(BaseModel):
    token: str = Field(description="Signed session token, valid for one hour")
    user: UserView


class MessageResponse(BaseModel):
    """Body of every 4xx response and of simple confirmations."""
    message: str


class ErrorResponse(BaseModel):
    """Body of 500 responses."""
    message: str = Field(default="Server error")
    error: Optional[str] = Field(default=None, description="Short description of the failure")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /api/health for monitoring and load balancer probes.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Central database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
