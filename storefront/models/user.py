# storefront/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class UserRole(SQLModel, table=True):
    """
    Application role granted to a Supabase auth user.

    Identity:
      - user_id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    A user without an 'admin' row is a regular customer. Supabase Auth
    owns credentials; this table only records roles.
    """

    __tablename__ = "user_roles"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        index=True,
        description="Matches Supabase auth.users.id",
    )

    role: str = Field(
        default="admin",
        index=True,
        description="Application role: admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
