from typing import List
from fastapi import Depends, HTTPException, status
from models.user import Role, User
from core.security import get_current_user

class RoleChecker:
    def __init__(self, allowed_roles: List[Role]):
        self.allowed_roles = [role.value for role in allowed_roles]

    def __call__(self, user: User = Depends(get_current_user)) -> User:
        # Roles are stored as plain strings
        user_role = str(user.role.value) if hasattr(user.role, 'value') else str(user.role)

        if user_role not in self.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Operation not permitted. Required roles: {self.allowed_roles}"
            )
        return user

# Define reusable dependencies
require_admin = RoleChecker([Role.ADMIN])
require_management = RoleChecker([Role.ADMIN, Role.MANAGER])
