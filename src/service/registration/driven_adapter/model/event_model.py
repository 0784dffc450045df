import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.platform.database.orm_db_setting import Base

if TYPE_CHECKING:
    from src.service.registration.driven_adapter.model.event_registration_model import (
        EventRegistrationModel,
    )


class EventModel(Base):
    # Shared with the event-management subsystem, which owns the quoted PascalCase names
    __tablename__ = 'Events'
    __table_args__ = (
        CheckConstraint('"TotalSpots" >= 0', name='ck_events_total_spots_non_negative'),
        CheckConstraint('"RegisteredCount" >= 0', name='ck_events_registered_count_non_negative'),
    )

    id: Mapped[uuid.UUID] = mapped_column('Id', Uuid, primary_key=True, default=uuid.uuid4)
    total_spots: Mapped[int] = mapped_column('TotalSpots', Integer, nullable=False)
    registered_count: Mapped[int] = mapped_column(
        'RegisteredCount', Integer, nullable=False, default=0, server_default='0'
    )

    registrations: Mapped[list['EventRegistrationModel']] = relationship(
        'EventRegistrationModel', back_populates='event', lazy='noload'
    )
