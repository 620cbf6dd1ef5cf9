# pickup_api/schemas/auth.py
from typing import Optional
from pydantic import BaseModel

from .common import Role

class Caller(BaseModel):
    """Identity handed over by the token issuer; trusted as-is."""
    caller_id: str
    role: Role
    organization_id: Optional[str] = None
