"""Request bodies for authentication endpoints.

Fields default to empty strings so that missing values reach the service
layer, which owns the validation messages.
"""

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    password: str = ""
    role: str | None = None


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class OrganizationLoginRequest(LoginRequest):
    organization_id: str = ""


class EmailRequest(BaseModel):
    email: str = ""


class ResetPasswordRequest(BaseModel):
    password: str = ""


class ChangePasswordRequest(BaseModel):
    current_password: str = ""
    new_password: str = ""


class AssignRoleRequest(BaseModel):
    role_id: str = Field(default="", alias="roleId")

