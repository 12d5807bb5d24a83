from pydantic import BaseModel
from typing import Optional

from api.schemas.auth_schemas import Role

class User(BaseModel):
    id: str
    email: str
    role: Role
    full_name: Optional[str] = None
