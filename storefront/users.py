import logging

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from storefront.models import ROLE_ADMIN, ROLE_CUSTOMER, User
from storefront.schemas import PasswordChange, ProfileUpdate, RegisterRequest
from storefront.security import Authenticator

logger = logging.getLogger(__name__)


def _clean(value):
    if value is None:
        return None
    return value.strip() or None


class UserService:
    def __init__(self, db: Session, auth: Authenticator):
        self.db = db
        self.auth = auth

    def register(self, request: RegisterRequest) -> User:
        existing = (
            self.db.query(User)
            .filter(or_(User.email == request.email, User.username == request.username))
            .first()
        )
        if existing:
            if existing.email == request.email:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username is already taken")

        user = User(
            username=request.username,
            email=request.email,
            password_hash=self.auth.hash_password(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
            phone=_clean(request.phone),
            address=_clean(request.address),
            role=ROLE_CUSTOMER,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("User registered with ID %s (%s)", user.id, user.email)
        return user

    def login(self, email: str, password: str):
        user = self.db.query(User).filter(User.email == email).first()
        if not user or not self.auth.verify_password(password, user.password_hash):
            logger.warning("Failed login for %s", email)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
        return self.auth.create_access_token(user), user

    def update_profile(self, user: User, request: ProfileUpdate) -> User:
        user.first_name = request.first_name
        user.last_name = request.last_name
        user.phone = request.phone
        user.address = _clean(request.address)
        self.db.commit()
        self.db.refresh(user)
        return user

    def change_password(self, user: User, request: PasswordChange):
        if not self.auth.verify_password(request.current_password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
        user.password_hash = self.auth.hash_password(request.new_password)
        self.db.commit()
        logger.info("Password changed for user %s", user.id)

    def list_users(self):
        return self.db.query(User).order_by(User.id.asc()).all()

    def set_role(self, user_id: int, role: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        user.role = role
        self.db.commit()
        self.db.refresh(user)
        logger.info("User %s role set to %s", user.id, role)
        return user

    def ensure_admin(self, username: str, email: str, password: str) -> User:
        """Create the bootstrap admin account, or promote the account that
        already holds the email or the username."""
        user = (
            self.db.query(User)
            .filter(or_(User.email == email, User.username == username))
            .order_by((User.email == email).desc())
            .first()
        )
        if user is None:
            user = User(
                username=username,
                email=email,
                password_hash=self.auth.hash_password(password),
                first_name="Store",
                last_name="Admin",
                role=ROLE_ADMIN,
            )
            self.db.add(user)
        else:
            user.role = ROLE_ADMIN
        self.db.commit()
        self.db.refresh(user)
        return user
