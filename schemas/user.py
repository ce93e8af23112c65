# Software Engineer: Kyeshav Chettiar 
# Company FXO - Adcorp 
# Configured and pushed onto the virtual machine for testing and evaluation for team members to use within the companies rules and regulations 
# v3.0.0.0 


from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from uuid import UUID

from models.user import Role

class UserCreate(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    first_name: str = Field("", max_length=100)
    last_name: str = Field("", max_length=100)
    password: str = Field(..., min_length=8)
    role: Role = Role.WAREHOUSE_USER

class UserUpdate(BaseModel):
    role: Optional[Role] = None
    is_active: Optional[bool] = None

class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)

class UserResponse(BaseModel):
    id: UUID
    email: EmailStr
    username: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
    must_change_password: bool
    model_config = ConfigDict(from_attributes=True)
