from fastapi import APIRouter, Depends
from sqlmodel import Session

from ticketing.api.deps import CurrentUserDep, SessionDep
from ticketing.domain.models import Ticket
from ticketing.domain.schemas import AssignRequest, AssignResult, CallerIdentity, TicketCreate
from ticketing.services.ticket_service import assign_user, create_ticket, get_ticket_details

router = APIRouter(tags=["Tickets"])


@router.post("/ticket", response_model=Ticket, status_code=201)
def post_ticket(
    payload: TicketCreate,
    session: Session = Depends(SessionDep),
    caller: CallerIdentity = Depends(CurrentUserDep),
):
    return create_ticket(
        session,
        caller,
        title=payload.title,
        description=payload.description,
        type=payload.type,
        venue=payload.venue,
        status=payload.status,
        price=payload.price,
        priority=payload.priority,
        due_date=payload.due_date,
        created_by=payload.created_by,
    )


@router.post("/tickets/{ticket_id}/assign", response_model=AssignResult)
def post_assignment(
    ticket_id: int,
    payload: AssignRequest,
    session: Session = Depends(SessionDep),
    caller: CallerIdentity = Depends(CurrentUserDep),
):
    assigned = assign_user(session, caller, ticket_id, payload.user_id)
    return AssignResult(message="User assigned successfully.", ticket_id=ticket_id, assigned_users=assigned)


@router.get("/tickets/{ticket_id}", response_model=Ticket)
def get_one_ticket(
    ticket_id: int,
    session: Session = Depends(SessionDep),
    caller: CallerIdentity = Depends(CurrentUserDep),
):
    return get_ticket_details(session, ticket_id)
