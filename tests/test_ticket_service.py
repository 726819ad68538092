from datetime import datetime

import pytest

from ticketing.domain.errors import (
    AuthError, AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from ticketing.domain.models import Ticket
from ticketing.domain.schemas import CallerIdentity
from ticketing.services import ticket_service
from ticketing.services.ticket_service import (
    MAX_ASSIGNED_USERS, assign_user, create_ticket, get_ticket_details
)

from conftest import FUTURE


def _as(user):
    return CallerIdentity(user_id=user.id)


def _fields(creator, **overrides):
    fields = dict(
        title="Match day",
        description="Block B",
        type="sports",
        venue="Stadium",
        status="open",
        price=80.0,
        priority="high",
        due_date=FUTURE,
        created_by=creator.id,
    )
    fields.update(overrides)
    return fields


# --- creation ---------------------------------------------------------------

def test_create_and_fetch_roundtrip(session, make_user):
    creator = make_user()
    ticket = create_ticket(session, _as(creator), **_fields(creator))

    assert ticket.id is not None
    assert ticket.assigned_users == []

    fetched = get_ticket_details(session, ticket.id)
    assert fetched.title == "Match day"
    assert fetched.description == "Block B"
    assert fetched.type == "sports"
    assert fetched.venue == "Stadium"
    assert fetched.status == "open"
    assert fetched.price == 80.0
    assert fetched.priority == "high"
    assert fetched.due_date == datetime(2099, 1, 1, 10, 0)
    assert fetched.created_by == creator.id
    assert fetched.assigned_users == []


def test_create_requires_caller(session, make_user):
    creator = make_user()
    with pytest.raises(AuthError):
        create_ticket(session, None, **_fields(creator))


@pytest.mark.parametrize("field", ["title", "description", "type", "venue", "status", "priority", "due_date"])
def test_create_missing_field(session, make_user, field):
    creator = make_user()
    with pytest.raises(ValidationError, match="missing"):
        create_ticket(session, _as(creator), **_fields(creator, **{field: None}))


def test_create_zero_price_counts_as_missing(session, make_user):
    creator = make_user()
    with pytest.raises(ValidationError, match="missing"):
        create_ticket(session, _as(creator), **_fields(creator, price=0))


@pytest.mark.parametrize("overrides", [{"status": "resolved"}, {"status": "in progress"}, {"priority": "urgent"}])
def test_create_rejects_values_outside_closed_sets(session, make_user, overrides):
    creator = make_user()
    with pytest.raises(ValidationError):
        create_ticket(session, _as(creator), **_fields(creator, **overrides))


@pytest.mark.parametrize("due", ["2020-01-01T00:00:00", "yesterday", "2024-13-40"])
def test_create_rejects_past_or_invalid_due_date(session, make_user, due):
    creator = make_user()
    with pytest.raises(ValidationError, match="future"):
        create_ticket(session, _as(creator), **_fields(creator, due_date=due))


def test_create_due_date_must_be_strictly_future(session, make_user):
    creator = make_user()
    now = datetime(2030, 6, 1, 12, 0, 0)
    with pytest.raises(ValidationError):
        create_ticket(session, _as(creator), now=now, **_fields(creator, due_date="2030-06-01T12:00:00"))

    ticket = create_ticket(session, _as(creator), now=now, **_fields(creator, due_date="2030-06-01T12:00:01"))
    assert ticket.id is not None


def test_create_converts_aware_due_date_to_reference_zone(session, make_user):
    creator = make_user()
    ticket = create_ticket(session, _as(creator), **_fields(creator, due_date="2099-01-01T00:00:00+00:00"))
    assert ticket.due_date == datetime(2099, 1, 1, 5, 30)


def test_create_unknown_creator(session, make_user):
    creator = make_user()
    with pytest.raises(ValidationError, match="Invalid ID"):
        create_ticket(session, _as(creator), **_fields(creator, created_by=9999))


def test_get_unknown_ticket(session):
    with pytest.raises(NotFoundError):
        get_ticket_details(session, 12345)


# --- assignment -------------------------------------------------------------

def _reload(session, ticket_id):
    session.expire_all()
    return session.get(Ticket, ticket_id)


def test_creator_assigns_user(session, make_user, make_ticket):
    creator, worker = make_user(), make_user()
    ticket = make_ticket(creator)

    assigned = assign_user(session, _as(creator), ticket.id, worker.id)

    assert assigned == [{"userId": worker.id, "name": worker.name, "email": worker.email}]
    stored = _reload(session, ticket.id)
    assert stored.assigned_users == assigned
    assert stored.version == 1


def test_admin_assigns_on_any_ticket(session, make_user, make_ticket):
    creator, admin, worker = make_user(), make_user("admin"), make_user()
    ticket = make_ticket(creator)

    assign_user(session, _as(admin), ticket.id, worker.id)
    assert len(_reload(session, ticket.id).assigned_users) == 1


def test_other_customer_cannot_assign(session, make_user, make_ticket):
    creator, stranger, worker = make_user(), make_user(), make_user()
    ticket = make_ticket(creator)

    with pytest.raises(AuthorizationError):
        assign_user(session, _as(stranger), ticket.id, worker.id)
    assert _reload(session, ticket.id).assigned_users == []


@pytest.mark.parametrize("caller_role", ["admin", "customer"])
def test_admin_is_never_assignable(session, make_user, make_ticket, caller_role):
    caller = make_user(caller_role)
    ticket = make_ticket(caller)
    target = make_user("admin")

    with pytest.raises(ValidationError, match="admin"):
        assign_user(session, _as(caller), ticket.id, target.id)


def test_duplicate_assignment(session, make_user, make_ticket):
    creator, worker = make_user(), make_user()
    ticket = make_ticket(creator)

    assign_user(session, _as(creator), ticket.id, worker.id)
    with pytest.raises(ValidationError, match="already assigned"):
        assign_user(session, _as(creator), ticket.id, worker.id)

    ids = [u["userId"] for u in _reload(session, ticket.id).assigned_users]
    assert ids == [worker.id]


def test_capacity_is_five(session, make_user, make_ticket):
    creator = make_user()
    ticket = make_ticket(creator)
    workers = [make_user() for _ in range(MAX_ASSIGNED_USERS + 1)]

    for w in workers[:MAX_ASSIGNED_USERS]:
        assign_user(session, _as(creator), ticket.id, w.id)

    with pytest.raises(ValidationError, match="Maximum"):
        assign_user(session, _as(creator), ticket.id, workers[-1].id)
    assert len(_reload(session, ticket.id).assigned_users) == MAX_ASSIGNED_USERS


def test_closed_ticket_rejects_assignment(session, make_user, make_ticket):
    creator, worker = make_user(), make_user()
    ticket = make_ticket(creator, status="closed")

    with pytest.raises(ValidationError, match="closed"):
        assign_user(session, _as(creator), ticket.id, worker.id)


def test_assign_unknown_ticket_or_user(session, make_user, make_ticket):
    creator = make_user()
    ticket = make_ticket(creator)

    with pytest.raises(NotFoundError):
        assign_user(session, _as(creator), 999, creator.id)
    with pytest.raises(ValidationError, match="does not exist"):
        assign_user(session, _as(creator), ticket.id, 999)
    with pytest.raises(ValidationError, match="missing"):
        assign_user(session, _as(creator), ticket.id, None)


def test_assign_with_unknown_caller(session, make_user, make_ticket):
    creator, worker = make_user(), make_user()
    ticket = make_ticket(creator)

    with pytest.raises(ValidationError, match="Requesting user"):
        assign_user(session, CallerIdentity(user_id=999), ticket.id, worker.id)


def test_snapshot_is_not_live(session, make_user, make_ticket):
    creator, worker = make_user(), make_user()
    ticket = make_ticket(creator)
    assign_user(session, _as(creator), ticket.id, worker.id)
    old_name = worker.name

    worker.name = "Renamed"
    session.add(worker)
    session.commit()

    assert _reload(session, ticket.id).assigned_users[0]["name"] == old_name


def test_stale_read_raises_conflict(session, make_user, make_ticket, monkeypatch):
    creator, first, second = make_user(), make_user(), make_user()
    ticket = make_ticket(creator)
    stale = Ticket(**ticket.model_dump())

    assign_user(session, _as(creator), ticket.id, first.id)

    # second writer still holds the version-0 copy
    monkeypatch.setattr(ticket_service, "get_ticket", lambda s, tid: stale)
    with pytest.raises(ConflictError):
        assign_user(session, _as(creator), ticket.id, second.id)

    monkeypatch.undo()
    stored = _reload(session, ticket.id)
    assert [u["userId"] for u in stored.assigned_users] == [first.id]
    assert stored.version == 1
