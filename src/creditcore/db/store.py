"""PostgreSQL account store using row locks for per-account atomicity."""

import logging

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from creditcore.contracts.models import Account, AuditEntry
from creditcore.core.errors import AccountExists, AccountNotFound, StorageUnavailable
from creditcore.core.store import AccountChange, Mutator
from creditcore.db.repos import AccountRepo, AuditRepo
from creditcore.db.session import get_session_factory

logger = logging.getLogger(__name__)

# Failures that can only happen before the first write of a transaction
# are mapped to StorageUnavailable and are safe to retry.
TRANSIENT_ERRORS = (OperationalError, InterfaceError, OSError, TimeoutError)


class PostgresAccountStore:
    """AccountStore backed by credit_accounts / credit_audit.

    mutate() opens a transaction, takes SELECT ... FOR UPDATE on the account
    row, runs the mutator, then writes the new state and its audit entries
    before committing. Rows of other accounts are never locked.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    async def get(self, user_id: str) -> Account | None:
        try:
            async with self.session_factory() as session:
                return await AccountRepo(session).get(user_id)
        except TRANSIENT_ERRORS as e:
            raise StorageUnavailable(str(e), user_id=user_id) from e

    async def create(self, account: Account, entries: list[AuditEntry]) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                try:
                    inserted = await AccountRepo(session).insert(account)
                except TRANSIENT_ERRORS as e:
                    raise StorageUnavailable(str(e), user_id=account.user_id) from e
                if not inserted:
                    raise AccountExists(account.user_id)
                audit = AuditRepo(session)
                for entry in entries:
                    await audit.insert_entry(entry)

    async def mutate(self, user_id: str, fn: Mutator) -> AccountChange | None:
        async with self.session_factory() as session:
            async with session.begin():
                accounts = AccountRepo(session)
                try:
                    current = await accounts.get_for_update(user_id)
                except TRANSIENT_ERRORS as e:
                    raise StorageUnavailable(str(e), user_id=user_id) from e
                if current is None:
                    raise AccountNotFound(user_id)

                change = fn(current)
                if change is None:
                    return None

                committed = Account.model_validate(change.account.model_dump())
                await accounts.update_state(committed)
                audit = AuditRepo(session)
                for entry in change.entries:
                    await audit.insert_entry(entry)
        logger.debug("Committed %d audit entries for %s", len(change.entries), user_id)
        return AccountChange(account=committed, entries=change.entries)

    async def list_user_ids(self) -> list[str]:
        try:
            async with self.session_factory() as session:
                return await AccountRepo(session).list_user_ids()
        except TRANSIENT_ERRORS as e:
            raise StorageUnavailable(str(e)) from e

    async def list_audit(self, user_id: str, limit: int = 50) -> list[AuditEntry]:
        try:
            async with self.session_factory() as session:
                return await AuditRepo(session).list_for_user(user_id, limit)
        except TRANSIENT_ERRORS as e:
            raise StorageUnavailable(str(e), user_id=user_id) from e
