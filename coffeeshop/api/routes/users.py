from typing import Optional

from fastapi import APIRouter, Depends

from coffeeshop.api.responses import envelope
from coffeeshop.core.config import Settings
from coffeeshop.core.database import get_uow
from coffeeshop.core.security import get_current_user_id, get_settings
from coffeeshop.models.schemas import ProfileDelete, ProfileUpdate, SigninRequest, SignupRequest, UserUpdate
from coffeeshop.repositories.base import UnitOfWork
from coffeeshop.services.user_service import UserService

router = APIRouter()


@router.post("/signup", status_code=201)
def signup(
    signup_data: SignupRequest,
    uow: UnitOfWork = Depends(get_uow),
    settings: Settings = Depends(get_settings),
):
    user = UserService(uow, settings).signup(signup_data)
    return envelope({"user": user}, message="User created successfully")


@router.post("/signin")
def signin(
    signin_data: SigninRequest,
    uow: UnitOfWork = Depends(get_uow),
    settings: Settings = Depends(get_settings),
):
    token, user = UserService(uow, settings).signin(signin_data)
    return envelope({"token": token, "user": user}, message="Login successful")


@router.put("/update/{user_id}")
def update_user(
    user_id: int,
    user_data: UserUpdate,
    current_user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
    settings: Settings = Depends(get_settings),
):
    user = UserService(uow, settings).update_user(current_user_id, user_id, user_data)
    return envelope({"user": user}, message="User updated successfully")


@router.get("/profile")
def get_profile(
    current_user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
    settings: Settings = Depends(get_settings),
):
    return envelope({"user": UserService(uow, settings).get_profile(current_user_id)})


@router.put("/profile")
def update_profile(
    profile_data: ProfileUpdate,
    current_user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
    settings: Settings = Depends(get_settings),
):
    user = UserService(uow, settings).update_profile(current_user_id, profile_data)
    return envelope({"user": user}, message="Profile updated successfully")


@router.delete("/profile")
def delete_profile(
    delete_data: Optional[ProfileDelete] = None,
    current_user_id: int = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_uow),
    settings: Settings = Depends(get_settings),
):
    password = delete_data.password if delete_data else ""
    UserService(uow, settings).delete_profile(current_user_id, password)
    return envelope(message="Profile deleted successfully")
