from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional


class SignupSchema(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=3)


class LoginSchema(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)


class AdminLoginSchema(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserOut(BaseModel):
    id: int
    email: EmailStr
    name: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class AdminOut(BaseModel):
    id: int
    email: EmailStr
    role: str


class SessionUser(BaseModel):
    id: int
    email: Optional[str] = None
    role: Optional[str] = None
