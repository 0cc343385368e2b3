from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from models.user_model import UserRole

class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    confirm_password: str = Field(min_length=8)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self

class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    code: Optional[str] = Field(default=None, min_length=6)

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    email: EmailStr
    image: Optional[str] = None
    role: UserRole
    is_two_factor_enabled: bool
    is_verified: bool = False

class SessionUser(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    image: Optional[str] = None
    role: UserRole
    is_two_factor_enabled: bool
    is_oauth: bool

class ResetPasswordRequest(BaseModel):
    email: EmailStr

class NewPasswordForm(BaseModel):
    password: str = Field(min_length=8)

class SettingsUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)
    new_password: Optional[str] = Field(default=None, min_length=8)
    is_two_factor_enabled: Optional[bool] = None
    role: Optional[UserRole] = None

    @model_validator(mode="after")
    def passwords_together(self):
        if self.password and not self.new_password:
            raise ValueError("New password is required")
        if self.new_password and not self.password:
            raise ValueError("Password is required")
        return self

class ActionResult(BaseModel):
    """Outcome of an auth form action. `redirect` only accompanies a successful sign-in."""
    error: Optional[str] = None
    success: Optional[str] = None
    two_factor: Optional[bool] = None
    redirect: Optional[str] = None
