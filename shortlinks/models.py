"""SQLAlchemy ORM models for the shortlinks service.

Data Model Layout
=================
::
    links table
    ├─ id (TEXT PRIMARY KEY)
    └─ target_url (TEXT NOT NULL)

    link_statistics table (append-only)
    ├─ id (SERIAL PRIMARY KEY)
    ├─ link_id (TEXT, INDEXED, not a foreign key)
    ├─ referer (TEXT NULL)
    ├─ user_agent (TEXT NULL)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

How to Use
===========
**Step 1 — Import**::
    from shortlinks.models import Link, LinkStatistic

**Step 2 — Query a link**::
    result = await session.execute(select(Link).where(Link.id == "MTIzNA"))
    link = result.scalar_one_or_none()

Key Behaviours
===============
- ``links.id`` uniqueness is the only guard against identifier collisions.
- Statistics rows are never updated or deleted by the service.
- ``link_statistics.link_id`` has no foreign key constraint.

Classes:
    Link:  A short identifier and the URL it redirects to.
    LinkStatistic:  One recorded redirect.
"""

import datetime

from sqlalchemy import DateTime, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from shortlinks.database import Base

__all__ = ["Link", "LinkStatistic"]


class Link(Base):
    __tablename__ = "links"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    target_url: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Link(id='{self.id}', target_url='{self.target_url}')>"


class LinkStatistic(Base):
    __tablename__ = "link_statistics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    link_id: Mapped[str] = mapped_column(Text, index=True, nullable=False)
    referer: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<LinkStatistic(id={self.id}, link_id='{self.link_id}')>"
