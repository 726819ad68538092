from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in-progress"
    CLOSED = "closed"

    @classmethod
    def normalize(cls, raw: Optional[str]) -> Optional["TicketStatus"]:
        # Stored rows may carry "in progress", "IN_PROGRESS", ... : fold onto the enum
        key = (raw or "").strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return cls(key)
        except ValueError:
            return None


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class UserCreate(_Body):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = Field(default=None, validation_alias=AliasChoices("role", "type"))


class UserRead(BaseModel):
    id: int
    name: str
    email: str


class LoginRequest(_Body):
    email: Optional[str] = None
    password: Optional[str] = None


class TokenResponse(BaseModel):
    message: str = "Login successful"
    token: str


class CallerIdentity(BaseModel):
    user_id: int


class TicketCreate(_Body):
    # presence and value checks happen in ticket_service.create_ticket
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    venue: Optional[str] = None
    status: Optional[str] = None
    price: Optional[float] = None
    priority: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")
    created_by: Optional[int] = Field(default=None, alias="createdBy")


class AssignRequest(_Body):
    user_id: Optional[int] = Field(default=None, alias="userId")


class AssignedUser(BaseModel):
    """Snapshot of a user copied into a ticket at assignment time."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
    name: str
    email: str

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class AssignResult(BaseModel):
    message: str
    ticket_id: int
    assigned_users: list[dict[str, Any]]
