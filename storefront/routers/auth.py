from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.models import User
from storefront.schemas import LoginRequest, PasswordChange, ProfileUpdate, RegisterRequest, UserOut
from storefront.security import Authenticator, get_authenticator, get_current_user
from storefront.users import UserService

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def get_user_service(db: Session = Depends(get_db), auth: Authenticator = Depends(get_authenticator)) -> UserService:
    return UserService(db, auth)


@router.post("/register", status_code=status.HTTP_201_CREATED, summary="Register a new customer account")
def register(request: RegisterRequest, users: UserService = Depends(get_user_service)):
    user = users.register(request)
    return {
        "success": True,
        "message": "Account created successfully",
        "data": {"user": UserOut.model_validate(user).model_dump()},
    }


@router.post("/login", summary="Exchange credentials for an access token")
def login(request: LoginRequest, users: UserService = Depends(get_user_service)):
    token, user = users.login(request.email, request.password)
    return {
        "success": True,
        "message": "Login successful",
        "data": {"token": token, "user": UserOut.model_validate(user).model_dump()},
    }


@router.get("/profile", summary="Current user's profile")
def get_profile(user: User = Depends(get_current_user)):
    return {"success": True, "data": {"user": UserOut.model_validate(user).model_dump()}}


@router.put("/profile", summary="Update the current user's profile")
def update_profile(request: ProfileUpdate, user: User = Depends(get_current_user),
                   users: UserService = Depends(get_user_service)):
    user = users.update_profile(user, request)
    return {
        "success": True,
        "message": "Profile updated successfully",
        "data": {"user": UserOut.model_validate(user).model_dump()},
    }


@router.put("/change-password", summary="Change the current user's password")
def change_password(request: PasswordChange, user: User = Depends(get_current_user),
                    users: UserService = Depends(get_user_service)):
    users.change_password(user, request)
    return {"success": True, "message": "Password changed successfully"}
