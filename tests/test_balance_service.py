import uuid
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from gophermart.balance_service import BalanceService
from gophermart.model import Balance, InvalidOrderNumberError, Withdrawal

VALID_NUMBER = "79927398713"


class RepositoryError(Exception):
    pass


@pytest.fixture
def repository():
    return Mock()


@pytest.fixture
def service(repository):
    return BalanceService(repository)


def test_balance_returns_result(service, repository):
    user_id = uuid.uuid4()
    repository.balance.return_value = Balance(current=12.3, withdrawn=45.6)

    result = service.balance(user_id)

    assert result.current == 12.3
    assert result.withdrawn == 45.6
    repository.balance.assert_called_once_with(user_id)


def test_balance_propagates_repository_error(service, repository):
    error = RepositoryError("repository error")
    repository.balance.side_effect = error

    with pytest.raises(RepositoryError) as info:
        service.balance(uuid.uuid4())
    assert info.value is error


def test_withdraw_rejects_empty_number(service, repository):
    with pytest.raises(InvalidOrderNumberError):
        service.withdraw(uuid.uuid4(), "", 10.0)
    assert repository.withdraw.call_count == 0


def test_withdraw_rejects_invalid_number(service, repository):
    with pytest.raises(InvalidOrderNumberError):
        service.withdraw(uuid.uuid4(), "123456789", 10.0)
    assert repository.withdraw.call_count == 0


def test_withdraw_calls_repository(service, repository):
    user_id = uuid.uuid4()
    repository.withdraw.return_value = None

    assert service.withdraw(user_id, VALID_NUMBER, 10.0) is None
    repository.withdraw.assert_called_once_with(user_id, VALID_NUMBER, 10.0)


def test_withdraw_propagates_repository_error(service, repository):
    error = RepositoryError("repository error")
    repository.withdraw.side_effect = error

    with pytest.raises(RepositoryError) as info:
        service.withdraw(uuid.uuid4(), VALID_NUMBER, 10.0)
    assert info.value is error


def test_all_withdrawals_returns_result(service, repository):
    user_id = uuid.uuid4()
    now = datetime.now(timezone.utc)
    expected = [
        Withdrawal(order="1234567890", sum=100.0, processed_at=now),
        Withdrawal(order="0987654321", sum=50.0, processed_at=now),
    ]
    repository.withdrawal_history.return_value = expected

    assert service.all_withdrawals(user_id) == expected
    repository.withdrawal_history.assert_called_once_with(user_id)


def test_all_withdrawals_propagates_repository_error(service, repository):
    error = RepositoryError("repository error")
    repository.withdrawal_history.side_effect = error

    with pytest.raises(RepositoryError) as info:
        service.all_withdrawals(uuid.uuid4())
    assert info.value is error