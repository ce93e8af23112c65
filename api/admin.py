"""
Admin endpoints for user management.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from api.dependencies import require_admin
from core.database import get_db
from core.exceptions import NotFoundError
from core.security import get_client_ip
from models.user import User
from schemas.user import UserCreate, UserResponse, UserUpdate
from services.audit_service import AuditService
from services.auth_service import AuthService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _get_user(user_id: UUID, db: Session) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User")
    return user


def _audit_user_change(db: Session, user: User, actor: User, request: Request, details: dict) -> None:
    AuditService.record(
        db,
        action=AuditService.UPDATE_USER,
        entity_type="User",
        entity_id=user.id,
        actor=actor,
        details={"email": user.email, **details},
        ip_address=get_client_ip(request),
    )


@router.get("/users", response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db)):
    """List all users for admin management."""
    return db.query(User).order_by(User.username).all()


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Create a staff user who must pick a new password on first login."""
    user = AuthService.register_user(payload, db, must_change_password=True)
    AuditService.record(
        db,
        action=AuditService.CREATE_USER,
        entity_type="User",
        entity_id=user.id,
        actor=current_user,
        details={"email": user.email, "role": user.role},
        ip_address=get_client_ip(request),
    )
    return user


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: UUID,
    payload: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Update an existing user (role/active state)."""
    user = _get_user(user_id, db)
    changes = {}

    if payload.role is not None:
        if str(user.id) == str(current_user.id) and payload.role.value != user.role:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")
        user.role = payload.role.value  # type: ignore[assignment]
        changes["role"] = payload.role.value
    if payload.is_active is not None:
        if str(user.id) == str(current_user.id) and payload.is_active is False:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")
        user.is_active = payload.is_active  # type: ignore[assignment]
        changes["is_active"] = payload.is_active

    db.commit()
    db.refresh(user)
    _audit_user_change(db, user, current_user, request, changes)
    return user


@router.post("/users/{user_id}/deactivate", response_model=UserResponse)
def deactivate_user(
    user_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Deactivate a user account."""
    user = _get_user(user_id, db)
    if str(user.id) == str(current_user.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot deactivate your own account")

    user.is_active = False  # type: ignore[assignment]
    db.commit()
    db.refresh(user)
    _audit_user_change(db, user, current_user, request, {"is_active": False})
    return user
