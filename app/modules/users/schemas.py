from pydantic import BaseModel
from typing import Optional


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class AccountDeletion(BaseModel):
    password: Optional[str] = None
