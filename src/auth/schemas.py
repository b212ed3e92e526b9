# src/auth/schemas.py

from pydantic import BaseModel


class StaffPrincipal(BaseModel):
    """Staff member authenticated through HTTP Basic."""
    username: str
    role: str = "STAFF"

    class Config:
        from_attributes = True
