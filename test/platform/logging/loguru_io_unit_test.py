import pytest

from src.platform.exception.exceptions import CustomBaseError
from src.platform.logging.loguru_io import Logger
from src.platform.logging.loguru_io_utils import mask_sensitive, truncate_content


@pytest.mark.unit
class TestLoggerIo:
    @pytest.mark.asyncio
    async def test_async_function_result_is_returned(self) -> None:
        @Logger.io
        async def add(*, a: int, b: int) -> int:
            return a + b

        assert await add(a=1, b=2) == 3

    def test_sync_function_result_is_returned(self) -> None:
        @Logger.io
        def double(value: int) -> int:
            return value * 2

        assert double(4) == 8

    @pytest.mark.asyncio
    async def test_exceptions_are_reraised_by_default(self) -> None:
        @Logger.io
        async def fail() -> None:
            raise CustomBaseError('nope')

        with pytest.raises(CustomBaseError, match='nope'):
            await fail()

    def test_reraise_false_returns_none(self) -> None:
        @Logger.io(reraise=False)
        def fail() -> int:
            raise ValueError('boom')

        assert fail() is None

    @pytest.mark.asyncio
    async def test_nested_calls_log_exception_once(self) -> None:
        @Logger.io
        async def inner() -> None:
            raise CustomBaseError('inner failure')

        @Logger.io
        async def outer() -> None:
            await inner()

        with pytest.raises(CustomBaseError) as exc_info:
            await outer()

        assert getattr(exc_info.value, '_has_logged', False)


@pytest.mark.unit
class TestLogUtils:
    def test_mask_password_in_dsn_text(self) -> None:
        masked = mask_sensitive("password='s3cret' user=app")

        assert 's3cret' not in masked
        assert 'user=app' in masked

    def test_plain_values_pass_through(self) -> None:
        assert mask_sensitive({'user_id': 'alice'}) == {'user_id': 'alice'}

    def test_truncate_long_content(self) -> None:
        result = truncate_content('x' * 600)

        assert result.endswith('(truncated 100 chars)')
