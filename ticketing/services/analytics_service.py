from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func
from sqlmodel import Session, select

from ticketing.core.timeutils import day_span, is_date_only, parse_instant
from ticketing.domain.errors import ValidationError
from ticketing.domain.models import Ticket
from ticketing.domain.schemas import TicketPriority, TicketStatus


def _parse_range(start_date, end_date) -> tuple[datetime, datetime, datetime]:
    """Return (start, end, upper bound used in the created_at filter)."""
    if not start_date or not end_date:
        raise ValidationError("Required parameters are missing.")
    try:
        start = parse_instant(start_date)
        end = parse_instant(end_date)
    except ValueError:
        raise ValidationError("Invalid date range.")

    upper = end
    if isinstance(end_date, str) and is_date_only(end_date):
        # a bare end date covers the whole day
        upper = end + timedelta(days=1) - timedelta(microseconds=1)
    return start, end, upper


def _in_range(stmt, start: datetime, upper: datetime):
    return stmt.where(Ticket.created_at >= start, Ticket.created_at <= upper)


def _count_by(session: Session, column, start: datetime, upper: datetime) -> list[tuple[Any, int]]:
    stmt = _in_range(select(column, func.count(Ticket.id)), start, upper).group_by(column).order_by(column)
    return [(key, int(count)) for key, count in session.exec(stmt).all()]


def _total(session: Session, start: datetime, upper: datetime) -> int:
    return int(session.exec(_in_range(select(func.count(Ticket.id)), start, upper)).one() or 0)


def _status_counts(session: Session, start: datetime, upper: datetime) -> dict[TicketStatus, int]:
    counts = {s: 0 for s in TicketStatus}
    for raw, count in _count_by(session, Ticket.status, start, upper):
        status = TicketStatus.normalize(raw)
        if status is not None:
            counts[status] += count
    return counts


def _priority_counts(session: Session, start: datetime, upper: datetime) -> dict[str, int]:
    out: dict[str, int] = {}
    for raw, count in _count_by(session, Ticket.priority, start, upper):
        key = (raw or "").lower()
        out[key] = out.get(key, 0) + count
    return out


def _type_counts(session: Session, start: datetime, upper: datetime) -> dict[str, int]:
    return {raw: count for raw, count in _count_by(session, Ticket.type, start, upper)}


def get_ticket_analytics(session: Session, start_date, end_date) -> dict[str, Any]:
    start, _, upper = _parse_range(start_date, end_date)

    statuses = _status_counts(session, start, upper)
    rows = session.exec(_in_range(select(Ticket), start, upper).order_by(Ticket.created_at)).all()

    return {
        "totalTickets": _total(session, start, upper),
        "closedTickets": statuses[TicketStatus.CLOSED],
        "openTickets": statuses[TicketStatus.OPEN],
        "inProgressTickets": statuses[TicketStatus.IN_PROGRESS],
        "priorityDistribution": _priority_counts(session, start, upper),
        "typeDistribution": _type_counts(session, start, upper),
        "ticketDetails": [t.model_dump() for t in rows],
    }


def get_dashboard_analytics(session: Session, start_date, end_date) -> dict[str, Any]:
    start, end, upper = _parse_range(start_date, end_date)

    total_days = day_span(start, end)
    if total_days <= 0:
        raise ValidationError("Invalid date range.")

    total = _total(session, start, upper)
    avg_price = session.exec(_in_range(select(func.avg(Ticket.price)), start, upper)).one()
    statuses = _status_counts(session, start, upper)
    priorities = _priority_counts(session, start, upper)

    priority_distribution = {}
    for p in TicketPriority:
        count = priorities.get(p.value, 0)
        priority_distribution[p.value] = {"count": count, "averagePerDay": count / total_days}

    return {
        "totalDays": total_days,
        "totalTickets": total,
        "closedTickets": statuses[TicketStatus.CLOSED],
        "openTickets": statuses[TicketStatus.OPEN],
        "inProgressTickets": statuses[TicketStatus.IN_PROGRESS],
        "averageCustomerSpending": round(float(avg_price or 0), 2),
        "averageTicketsBookedPerDay": total / total_days,
        "priorityDistribution": priority_distribution,
        "typeDistribution": _type_counts(session, start, upper),
    }
