from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel

Role = Literal["admin", "teacher", "student"]


class AuthTokenPayload(BaseModel):
    sub: str
    role: Optional[Role] = None
    exp: Optional[datetime] = None
