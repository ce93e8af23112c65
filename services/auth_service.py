# Software Engineer: Kyeshav Chettiar 
# Company FXO - Adcorp 
# Configured and pushed onto the virtual machine for testing and evaluation for team members to use within the companies rules and regulations 
# v3.0.0.0 

from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status
import os
from dotenv import load_dotenv

from core.exceptions import ConflictError
from models.user import User
from schemas.user import UserCreate

load_dotenv()

SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_DAMAGETRACK_DEV_KEY")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=int(os.getenv("BCRYPT_ROUNDS", "12"))
)


class AuthService:
    """Service layer for authentication and user accounts."""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify plain password against hashed password."""
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        """Hash a plain password."""
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token."""
        to_encode = data.copy()
        expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> dict:
        """Verify JWT token and return payload."""
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except JWTError:
            raise credentials_exception
        if payload.get("sub") is None:
            raise credentials_exception
        return payload

    @staticmethod
    def find_conflicting_user(email: str, username: str, db: Session) -> Optional[str]:
        """Return a message naming the first clash on email or username, if any."""
        if db.query(User).filter(User.email == email.lower()).first():  # type: ignore
            return f"A user with email '{email}' already exists"
        if db.query(User).filter(User.username == username.lower()).first():  # type: ignore
            return f"A user with username '{username}' already exists"
        return None

    @staticmethod
    def register_user(user_in: UserCreate, db: Session, must_change_password: bool = False) -> User:
        """Create a new user account."""
        conflict = AuthService.find_conflicting_user(user_in.email, user_in.username, db)
        if conflict:
            raise ConflictError(conflict)

        new_user = User(
            email=user_in.email.lower().strip(),
            username=user_in.username.lower().strip(),
            first_name=user_in.first_name.strip(),
            last_name=user_in.last_name.strip(),
            hashed_password=AuthService.get_password_hash(user_in.password),
            role=user_in.role.value,
            must_change_password=must_change_password,
        )

        db.add(new_user)
        db.commit()
        db.refresh(new_user)
        return new_user

    @staticmethod
    def authenticate_user(email: str, password: str, db: Session) -> User:
        """Authenticate user by email and password."""
        user = db.query(User).filter(User.email == email.lower().strip()).first()  # type: ignore

        if not user or not AuthService.verify_password(password, str(user.hashed_password)):
            raise HTTPException(
                status_code=401,
                detail="Incorrect email or password"
            )
        if not user.is_active:
            raise HTTPException(status_code=403, detail="Account is deactivated")
        return user

    @staticmethod
    def change_password(user: User, current_password: str, new_password: str, db: Session) -> User:
        if not AuthService.verify_password(current_password, str(user.hashed_password)):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        user.hashed_password = AuthService.get_password_hash(new_password)  # type: ignore[assignment]
        user.must_change_password = False  # type: ignore[assignment]
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def get_user_from_token(token: str, db: Session) -> User:
        """Get user from JWT token."""
        payload = AuthService.verify_token(token)
        email = str(payload.get("sub"))

        user = db.query(User).filter(User.email == email).first()  # type: ignore
        if user is None:
            raise HTTPException(status_code=401, detail="User not found")
        return user
