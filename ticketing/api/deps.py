from typing import Iterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from ticketing.core.config import Settings
from ticketing.domain.schemas import CallerIdentity
from ticketing.services.user_service import resolve_token

_bearer = HTTPBearer(auto_error=False)


def SessionDep(request: Request) -> Iterator[Session]:
    with Session(request.app.state.engine) as session:
        yield session


def SettingsDep(request: Request) -> Settings:
    return request.app.state.settings


def CurrentUserDep(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(SettingsDep),
) -> CallerIdentity:
    token = credentials.credentials if credentials else None
    return resolve_token(token, settings)
