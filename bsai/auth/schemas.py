from typing import Optional
from pydantic import BaseModel, EmailStr

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class User(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_id: Optional[str] = None
    role: str = "customer"
    is_active: bool = True
    created_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.email

class LoginResponse(BaseModel):
    token: str
    user: User

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: User
