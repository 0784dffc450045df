"""
Database Models

Import all models here to ensure they are registered with SQLAlchemy
"""

from src.service.registration.driven_adapter.model.event_model import EventModel
from src.service.registration.driven_adapter.model.event_registration_model import (
    EventRegistrationModel,
)

__all__ = [
    'EventModel',
    'EventRegistrationModel',
]
