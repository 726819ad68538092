import logging
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlmodel import Session

from ticketing.core.timeutils import now_local, parse_instant
from ticketing.domain.errors import (
    AuthError, AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from ticketing.domain.models import Ticket, User
from ticketing.domain.schemas import (
    AssignedUser, CallerIdentity, TicketPriority, TicketStatus, UserRole
)

logger = logging.getLogger("ticket_service")

MAX_ASSIGNED_USERS = 5


def create_ticket(
    session: Session,
    caller: CallerIdentity | None,
    *,
    title: str | None,
    description: str | None,
    type: str | None,
    venue: str | None,
    status: str | None,
    price: float | None,
    priority: str | None,
    due_date: str | None,
    created_by: int | None,
    now: datetime | None = None,
) -> Ticket:
    if caller is None:
        raise AuthError("Unauthorized user.")

    # a price of 0 counts as missing, like every other falsy field
    if not all([title, description, type, venue, status, price, priority, due_date, created_by]):
        raise ValidationError("Required parameters are missing.")

    if status not in {s.value for s in TicketStatus}:
        raise ValidationError("Invalid status.")
    if priority not in {p.value for p in TicketPriority}:
        raise ValidationError("Invalid priority.")

    try:
        due = parse_instant(due_date)
    except ValueError:
        raise ValidationError("Due date must be a future date.")
    if due <= (now or now_local()):
        raise ValidationError("Due date must be a future date.")

    if session.get(User, created_by) is None:
        raise ValidationError("Invalid ID.")

    ticket = Ticket(
        title=title,
        description=description,
        type=type,
        venue=venue,
        status=status,
        price=price,
        priority=priority,
        due_date=due,
        created_by=created_by,
        assigned_users=[],
    )
    session.add(ticket)
    session.commit()
    session.refresh(ticket)

    logger.info("ticket created ticket_id=%s by user_id=%s", ticket.id, caller.user_id)
    return ticket


def get_ticket(session: Session, ticket_id: int) -> Ticket | None:
    return session.get(Ticket, ticket_id)


def get_ticket_details(session: Session, ticket_id: int | None) -> Ticket:
    if not ticket_id:
        raise ValidationError("Enter the ticket number.")
    ticket = get_ticket(session, ticket_id)
    if not ticket:
        raise NotFoundError("Ticket not found.")
    return ticket


def _reject(ticket_id: int, message: str, exc=ValidationError):
    logger.warning("assign rejected ticket_id=%s: %s", ticket_id, message)
    return exc(message)


def assign_user(session: Session, caller: CallerIdentity, ticket_id: int | None, user_id: int | None) -> list[dict[str, Any]]:
    """
    Append a snapshot of `user_id` to the ticket's assigned users.

    The write is conditional on the version read here; a concurrent
    assignment that committed in between makes it raise ConflictError.
    Returns the new assigned-user list.
    """
    if not ticket_id or not user_id:
        raise ValidationError("Required parameters are missing.")

    ticket = get_ticket(session, ticket_id)
    if not ticket:
        raise NotFoundError("Ticket not found.")

    if TicketStatus.normalize(ticket.status) is TicketStatus.CLOSED:
        raise _reject(ticket_id, "Cannot assign users to a closed ticket.")

    requester = session.get(User, caller.user_id)
    if requester is None:
        raise _reject(ticket_id, "Requesting user does not exist.")

    is_admin = requester.role == UserRole.ADMIN.value
    is_creator = requester.id == ticket.created_by
    if not is_admin and not is_creator:
        raise _reject(ticket_id, "Unauthorized user.", AuthorizationError)

    target = session.get(User, user_id)
    if target is None:
        raise _reject(ticket_id, "User does not exist.")
    if target.role == UserRole.ADMIN.value:
        raise _reject(ticket_id, "Cannot assign ticket to an admin.")

    assigned = list(ticket.assigned_users or [])
    if any(u.get("userId") == target.id for u in assigned):
        raise _reject(ticket_id, "User already assigned to this ticket.")
    if len(assigned) >= MAX_ASSIGNED_USERS:
        raise _reject(ticket_id, "Maximum number of users assigned.")

    assigned.append(AssignedUser(user_id=target.id, name=target.name, email=target.email).to_row())

    result = session.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id, Ticket.version == ticket.version)
        .values(assigned_users=assigned, version=ticket.version + 1, updated_at=now_local())
    )
    if result.rowcount != 1:
        session.rollback()
        raise _reject(ticket_id, "Ticket was modified concurrently, retry.", ConflictError)
    session.commit()

    logger.info("user_id=%s assigned to ticket_id=%s (%s/%s)", target.id, ticket_id, len(assigned), MAX_ASSIGNED_USERS)
    return assigned
