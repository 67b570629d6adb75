"""Tests for BaseService and its decorators."""

import pytest

from presale.services.base_service import BaseService, log_operation, transaction
from presale.utils.exceptions import InvalidAmount


class ExampleService(BaseService):
    """Service exercising the decorators."""

    @transaction
    async def store(self, value: int) -> int:
        if value < 0:
            raise InvalidAmount("negative")
        self.session.add(value)
        return value

    @log_operation
    async def compute(self, value: int) -> int:
        if value == 0:
            raise ZeroDivisionError("zero")
        return 10 // value


class TestTransactionDecorator:
    """Commit on success, rollback on error."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, mock_session) -> None:
        service = ExampleService(mock_session)

        assert await service.store(5) == 5

        mock_session.add.assert_called_once_with(5)
        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rolls_back_and_reraises(self, mock_session) -> None:
        service = ExampleService(mock_session)

        with pytest.raises(InvalidAmount):
            await service.store(-1)

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()


class TestLogOperationDecorator:
    """Results and errors pass through unchanged."""

    @pytest.mark.asyncio
    async def test_returns_result(self, mock_session) -> None:
        assert await ExampleService(mock_session).compute(5) == 2

    @pytest.mark.asyncio
    async def test_reraises(self, mock_session) -> None:
        with pytest.raises(ZeroDivisionError):
            await ExampleService(mock_session).compute(0)

    def test_preserves_name(self) -> None:
        assert ExampleService.compute.__name__ == "compute"
