"""
https://python-dependency-injector.ets-labs.org/index.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.service.registration.app.command.register_for_event_use_case import (
    RegisterForEventUseCase,
)
from src.service.registration.app.command.registration_change_dispatcher import (
    RegistrationChangeDispatcher,
)
from src.service.registration.app.command.unregister_from_event_use_case import (
    UnregisterFromEventUseCase,
)
from src.service.registration.driven_adapter.repo.registration_command_repo_impl import (
    RegistrationCommandRepoImpl,
)


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Repositories (stateless - acquire a pooled asyncpg connection per call)
    registration_command_repo = providers.Singleton(RegistrationCommandRepoImpl)

    # Registration Use Cases (stateless, can be Singleton)
    register_for_event_use_case = providers.Singleton(
        RegisterForEventUseCase,
        registration_command_repo=registration_command_repo,
        timeout_seconds=config_service.provided.REGISTRATION_REQUEST_TIMEOUT_SECONDS,
    )
    unregister_from_event_use_case = providers.Singleton(
        UnregisterFromEventUseCase,
        registration_command_repo=registration_command_repo,
        timeout_seconds=config_service.provided.REGISTRATION_REQUEST_TIMEOUT_SECONDS,
    )

    registration_change_dispatcher = providers.Singleton(
        RegistrationChangeDispatcher,
        register_use_case=register_for_event_use_case,
        unregister_use_case=unregister_from_event_use_case,
    )


container = Container()
