import uuid
from contextlib import closing
from decimal import Decimal

import pytest

from gophermart.balance_repository import BalanceRepository
from gophermart.model import Balance, InsufficientFundsError
from gophermart.storage import StorageError, connect, migrate
from gophermart.users_repository import UserRepository


@pytest.fixture
def dsn(tmp_path):
    value = f"sqlite:///{tmp_path / 'balance.sqlite'}"
    migrate(value)
    return value


@pytest.fixture
def repo(dsn):
    return BalanceRepository(dsn)


@pytest.fixture
def user_id(dsn):
    return UserRepository(dsn).create_user("alice", "hash")


def _fund(dsn, user_id, amount):
    with closing(connect(dsn)) as connection:
        connection.execute(
            "UPDATE balances SET balance = ? WHERE user_id = ?", (Decimal(amount), user_id)
        )


def test_new_user_has_empty_balance(repo, user_id):
    assert repo.balance(user_id) == Balance(current=0.0, withdrawn=0.0)


def test_unknown_user_balance_raises(repo):
    with pytest.raises(StorageError, match="failed to get balance"):
        repo.balance(uuid.uuid4())


def test_insufficient_funds_changes_nothing(repo, user_id):
    with pytest.raises(InsufficientFundsError):
        repo.withdraw(user_id, "12345", 10.0)

    assert repo.balance(user_id) == Balance(current=0.0, withdrawn=0.0)
    assert repo.withdrawal_history(user_id) == []


def test_withdraw_moves_points(dsn, repo, user_id):
    _fund(dsn, user_id, "500")

    repo.withdraw(user_id, "12345", 120.25)

    balance = repo.balance(user_id)
    assert balance.withdrawn == pytest.approx(120.25)
    assert balance.current + balance.withdrawn == pytest.approx(500.0)


def test_withdraw_whole_balance_is_allowed(dsn, repo, user_id):
    _fund(dsn, user_id, "50")

    repo.withdraw(user_id, "12345", 50.0)

    assert repo.balance(user_id) == Balance(current=0.0, withdrawn=50.0)


def test_history_lists_withdrawals(dsn, repo, user_id):
    _fund(dsn, user_id, "500")
    repo.withdraw(user_id, "111", 100.0)
    repo.withdraw(user_id, "222", 50.0)

    history = repo.withdrawal_history(user_id)

    assert [(item.order, item.sum) for item in history] == [("111", 100.0), ("222", 50.0)]
    assert all(item.processed_at.tzinfo is not None for item in history)
    assert repo.balance(user_id).withdrawn == pytest.approx(150.0)


def test_history_is_per_user(dsn, repo, user_id):
    other = UserRepository(dsn).create_user("bob", "hash")
    _fund(dsn, user_id, "500")
    repo.withdraw(user_id, "111", 100.0)

    assert repo.withdrawal_history(other) == []


def test_withdraw_unknown_user_raises(repo):
    with pytest.raises(StorageError, match="failed to check balance"):
        repo.withdraw(uuid.uuid4(), "12345", 1.0)


def test_bad_dsn_raises():
    with pytest.raises(StorageError, match="failed to create pool"):
        BalanceRepository("")