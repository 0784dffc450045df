"""
Registration Change Dispatcher

Routes one decoded change request to the matching use case and decides
what the transport should do with the message:

- COMPLETED: the store operation succeeded -> acknowledge
- REJECTED:  permanent failure (invalid request, unknown event, event full)
             -> acknowledge and report, redelivery cannot succeed
- RETRY:     storage failure, timeout or unexpected error
             -> leave unacknowledged for transport-level redelivery
"""

from src.platform.exception.exceptions import CustomBaseError
from src.platform.logging.loguru_io import Logger
from src.service.registration.app.command.register_for_event_use_case import (
    RegisterForEventUseCase,
)
from src.service.registration.app.command.unregister_from_event_use_case import (
    UnregisterFromEventUseCase,
)
from src.service.registration.app.dto import DispatchResult, RegistrationChangeRequest
from src.service.registration.domain.enum.registration_action import RegistrationAction
from src.service.registration.domain.exception.registration_exceptions import (
    InvalidRequestError,
)


class RegistrationChangeDispatcher:
    def __init__(
        self,
        register_use_case: RegisterForEventUseCase,
        unregister_use_case: UnregisterFromEventUseCase,
    ) -> None:
        self.register_use_case = register_use_case
        self.unregister_use_case = unregister_use_case

    async def dispatch_message(self, payload: bytes | str | None) -> DispatchResult:
        """Decode a raw message body, then dispatch it"""
        try:
            request = RegistrationChangeRequest.from_message(payload)
        except InvalidRequestError as e:
            Logger.base.warning(f'⚠️ [DISPATCH] Rejected undecodable request: {e}')
            return DispatchResult.rejected(e)

        return await self.dispatch(request)

    async def dispatch(self, request: RegistrationChangeRequest) -> DispatchResult:
        try:
            await self._route(request)
        except CustomBaseError as e:
            if e.retryable:
                Logger.base.warning(
                    f'🔁 [DISPATCH] {request.action} event={request.event_id} '
                    f'user={request.user_id} left for redelivery: {e}'
                )
                return DispatchResult.retry(e)

            Logger.base.warning(
                f'⛔ [DISPATCH] {request.action} event={request.event_id} '
                f'user={request.user_id} rejected: {type(e).__name__}: {e}'
            )
            return DispatchResult.rejected(e)
        except Exception as e:
            Logger.base.exception(
                f'❌ [DISPATCH] Unexpected error for {request.action} event={request.event_id} '
                f'user={request.user_id}: {e}'
            )
            return DispatchResult.retry(e)

        return DispatchResult.completed()

    async def _route(self, request: RegistrationChangeRequest) -> None:
        if request.action == RegistrationAction.REGISTER:
            await self.register_use_case.execute(
                event_id=request.event_id, user_id=request.user_id
            )
        elif request.action == RegistrationAction.UNREGISTER:
            await self.unregister_use_case.execute(
                event_id=request.event_id, user_id=request.user_id
            )
        else:
            raise InvalidRequestError(f'Unknown action: {request.action!r}')
