from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pincher.domain.services.auth_service import (
    authenticate_user,
    change_password,
    change_username,
    create_access_token,
    delete_user_account,
    get_current_user,
    register_user,
)
from pincher.presentation.dependencies import get_db

router = APIRouter(prefix="/api/auth", tags=["auth"])


class UserCreateRequest(BaseModel):
    username: str
    password: str


class ChangeUsernameRequest(BaseModel):
    new_username: str


class ChangePasswordRequest(BaseModel):
    new_password: str


@router.post("/register")
def register_user_endpoint(req: UserCreateRequest, db: Session = Depends(get_db)):
    try:
        user = register_user(db, req.username, req.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"id": user.id, "username": user.username}


@router.post("/token")
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)
):
    try:
        user = authenticate_user(db, form_data.username, form_data.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid Username: " + str(e))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token(data={"sub": user.username})
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me")
def read_users_me(current_user=Depends(get_current_user)):
    return {"id": current_user.id, "username": current_user.username}


@router.delete("/delete")
def delete_current_user(
    current_user=Depends(get_current_user), db: Session = Depends(get_db)
):
    success = delete_user_account(db, current_user.id)
    if not success:
        raise HTTPException(status_code=404, detail="User not found")
    return {"deleted": True}


@router.post("/change-username")
def change_username_endpoint(
    req: ChangeUsernameRequest,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user = change_username(db, current_user.id, req.new_username)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"username": user.username}


@router.post("/change-password")
def change_password_endpoint(
    req: ChangePasswordRequest,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        change_password(db, current_user.id, req.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True}
