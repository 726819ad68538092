from fastapi import APIRouter, Depends
from sqlmodel import Session

from ticketing.api.deps import SessionDep, SettingsDep
from ticketing.core.config import Settings
from ticketing.domain.schemas import LoginRequest, TokenResponse, UserCreate, UserRead
from ticketing.services.user_service import login_user, register_user

router = APIRouter(tags=["Users"])


@router.post("/users", response_model=UserRead, status_code=201)
def post_user(payload: UserCreate, session: Session = Depends(SessionDep)):
    user = register_user(
        session,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )
    return UserRead(id=user.id, name=user.name, email=user.email)


@router.post("/auth/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    session: Session = Depends(SessionDep),
    settings: Settings = Depends(SettingsDep),
):
    token = login_user(session, payload.email, payload.password, settings)
    return TokenResponse(token=token)
