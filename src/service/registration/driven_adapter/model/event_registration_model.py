import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.platform.database.orm_db_setting import Base

if TYPE_CHECKING:
    from src.service.registration.driven_adapter.model.event_model import EventModel


class EventRegistrationModel(Base):
    __tablename__ = 'EventRegistrations'
    # Non-unique: a user may hold more than one registration for the same event
    __table_args__ = (Index('ix_event_registrations_event_user', 'EventId', 'UserId'),)

    id: Mapped[int] = mapped_column('Id', Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[uuid.UUID] = mapped_column(
        'EventId', Uuid, ForeignKey('Events.Id', ondelete='CASCADE'), nullable=False
    )
    user_id: Mapped[str] = mapped_column('UserId', String, nullable=False)

    event: Mapped['EventModel'] = relationship(
        'EventModel', back_populates='registrations', lazy='noload'
    )
