import ipaddress
import logging

from sqlalchemy.engine import Engine
from sqlmodel import Session

from ticketing.core.config import Settings
from ticketing.core.security import decode_access_token
from ticketing.domain.errors import AuthError
from ticketing.domain.models import RequestLog

logger = logging.getLogger("request_log")


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def client_ip(forwarded_for: str | None, remote: str | None) -> str | None:
    ip = forwarded_for.split(",")[0].strip() if forwarded_for else remote
    if ip and ":" in ip:
        try:
            mapped = ipaddress.IPv6Address(ip).ipv4_mapped
        except ValueError:
            return ip
        if mapped is not None:
            return str(mapped)
    return ip


def record_request(
    engine: Engine,
    settings: Settings,
    *,
    method: str,
    path: str,
    status_code: int | None,
    authorization: str | None = None,
    forwarded_for: str | None = None,
    remote: str | None = None,
    user_agent: str | None = None,
    referer: str | None = None,
) -> None:
    """Append one row to user_logs. Never raises: failures are only logged."""
    token = bearer_token(authorization)
    user_id = None
    if token:
        try:
            user_id = decode_access_token(token, settings)["user_id"]
        except AuthError:
            user_id = None

    try:
        with Session(engine) as s:
            s.add(RequestLog(
                user_id=user_id,
                jwt_token=token,
                method=method,
                path=path,
                status_code=status_code,
                ip_addr=client_ip(forwarded_for, remote),
                user_agent=user_agent,
                referer=referer,
            ))
            s.commit()
    except Exception as e:
        logger.error("request log write failed for %s %s: %s", method, path, e)
