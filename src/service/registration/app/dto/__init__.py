from src.service.registration.app.dto.dispatch_result import DispatchOutcome, DispatchResult
from src.service.registration.app.dto.registration_change_request import (
    RegistrationChangeRequest,
)

__all__ = [
    'DispatchOutcome',
    'DispatchResult',
    'RegistrationChangeRequest',
]
