from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from sqlalchemy.dialects import postgresql

from parkmarket.application.services import booking_effects
from parkmarket.domain.common import WalletTransactionType
from parkmarket.domain.entities import Wallet
from parkmarket.infrastructure.persistence.sqlalchemy_repositories.sqlalchemy_repositories import (
    SQLAlchemyRefundRequestRepository,
    SQLAlchemyWalletRepository,
)


@pytest.fixture
def uow():
    uow = MagicMock()
    uow.wallets = AsyncMock()
    uow.wallets.get_by_owner_id.return_value = Wallet(owner_id=3, balance=Decimal("100.00"), id=1)
    uow.wallets.has_transaction.return_value = False
    uow.wallets.update.side_effect = lambda wallet: wallet
    uow.wallets.add_transaction.side_effect = lambda transaction: transaction
    return uow


@pytest.fixture
def booking():
    return Mock(id=9, confirmation_code="PK-ABCDEF-0009", owner_earnings=Decimal("85.00"))


@pytest.fixture
def lot():
    return Mock(owner_id=3)


def _session_returning_nothing():
    session = AsyncMock()
    result = MagicMock()
    result.scalars.return_value.first.return_value = None
    session.execute.return_value = result
    return session


def _postgres_sql(statement):
    return str(statement.compile(dialect=postgresql.dialect()))


class TestWalletUpdates:
    async def test_credit_locks_owner_wallet(self, uow, booking, lot):
        transaction = await booking_effects.credit_owner(uow, booking, lot)

        uow.wallets.get_by_owner_id.assert_awaited_once_with(3, for_update=True)
        assert transaction.amount == Decimal("85.00")
        assert uow.wallets.update.await_args.args[0].balance == Decimal("185.00")

    async def test_refund_deduction_locks_owner_wallet(self, uow, booking, lot):
        uow.wallets.has_transaction.return_value = True

        transaction = await booking_effects.debit_owner_refund(uow, booking, lot, Decimal("40.00"))

        uow.wallets.get_by_owner_id.assert_awaited_once_with(3, for_update=True)
        uow.wallets.has_transaction.assert_awaited_once_with(1, WalletTransactionType.CREDIT, "9")
        assert transaction.type == WalletTransactionType.REFUND
        assert transaction.amount == Decimal("-40.00")
        assert uow.wallets.update.await_args.args[0].balance == Decimal("60.00")

    async def test_no_deduction_without_wallet(self, uow, booking, lot):
        uow.wallets.get_by_owner_id.return_value = None

        assert await booking_effects.debit_owner_refund(uow, booking, lot, Decimal("40.00")) is None
        uow.wallets.add_transaction.assert_not_awaited()

    async def test_zero_refund_is_not_recorded(self, uow, booking, lot):
        assert await booking_effects.debit_owner_refund(uow, booking, lot, Decimal("0.00")) is None
        uow.wallets.get_by_owner_id.assert_not_awaited()


class TestRowLocks:
    async def test_wallet_read_for_update(self):
        session = _session_returning_nothing()

        await SQLAlchemyWalletRepository(session).get_by_owner_id(3, for_update=True)

        statement = session.execute.await_args.args[0]
        assert "FOR UPDATE" in _postgres_sql(statement)
        assert statement.get_execution_options()["populate_existing"] is True

    async def test_plain_wallet_read_takes_no_lock(self):
        session = _session_returning_nothing()

        await SQLAlchemyWalletRepository(session).get_by_owner_id(3)

        assert "FOR UPDATE" not in _postgres_sql(session.execute.await_args.args[0])

    async def test_refund_read_for_update(self):
        session = _session_returning_nothing()

        await SQLAlchemyRefundRequestRepository(session).get_by_id(12, for_update=True)

        assert "FOR UPDATE" in _postgres_sql(session.execute.await_args.args[0])
