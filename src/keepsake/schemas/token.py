"""Pydantic schemas for login and access tokens."""
from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Schema for the login endpoint."""

    username: str = Field(..., min_length=1)
    password: str
    remember: bool = False


class AccessClaims(BaseModel):
    """
    Claims carried by an access token.

    Times are Unix timestamps (seconds). `sub` is the Account id.
    """

    nbf: int
    exp: int
    sub: int
