from enum import StrEnum


class RegistrationAction(StrEnum):
    """Action carried by a registration change request"""

    REGISTER = 'Register'
    UNREGISTER = 'Unregister'
