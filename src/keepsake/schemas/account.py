"""Pydantic schemas for accounts."""
from pydantic import BaseModel, ConfigDict


class AccountResponse(BaseModel):
    """Account as shown to administrators; the password hash is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
