"""
Settlement backends: perform the value movement for a computed split.

The settlement service builds a list of Transfer instructions and hands them
to a backend inside its database transaction. The backend's returned
confirmation reference is the only thing that lets a tip become settled.

DatabaseLedgerBackend credits internal balances:
    - balance rows are pre-created with INSERT ... ON CONFLICT DO NOTHING
    - each row is then locked (SELECT ... FOR UPDATE) before it is credited,
      so concurrent tips to one creator serialize on that row only
"""
import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database import insert_for
from db_models import Balance, LedgerEntry, utcnow
from domain.enums import Network, TransferRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transfer:
    """One leg of a settlement: credit ``amount`` base units to ``to_address``."""
    role: TransferRole
    to_address: str
    amount: int


class SettlementBackend(ABC):
    """Performs every transfer of one settlement or none of them."""

    name = "abstract"

    @abstractmethod
    async def execute(
        self,
        db: AsyncSession,
        *,
        tip_id: str,
        network: Network,
        transfers: list[Transfer],
    ) -> str:
        """
        Apply ``transfers`` within the session's open transaction.

        Returns:
            Confirmation reference for the settlement.

        Raises:
            Any exception if the transfers could not be applied; the caller
            rolls the whole transaction back.
        """


class DatabaseLedgerBackend(SettlementBackend):
    """Credits balances in the service database."""

    name = "database"

    async def _credit(self, db: AsyncSession, network: Network, address: str, amount: int) -> int:
        await db.execute(
            insert_for(db, Balance)
            .values(network=network.value, address=address, amount=0, updated_at=utcnow())
            .on_conflict_do_nothing(index_elements=["network", "address"])
        )
        result = await db.execute(
            select(Balance)
            .where(Balance.network == network.value, Balance.address == address)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        balance = result.scalar_one()
        balance.amount = balance.amount + amount
        balance.updated_at = utcnow()
        return balance.amount

    async def execute(self, db, *, tip_id, network, transfers):
        # Balance rows are locked in address order so concurrent tips never
        # wait on each other in opposite orders.
        for transfer in sorted(transfers, key=lambda t: t.to_address):
            db.add(
                LedgerEntry(
                    tip_id=tip_id,
                    network=network.value,
                    address=transfer.to_address,
                    role=transfer.role.value,
                    amount=transfer.amount,
                )
            )
            new_balance = await self._credit(db, network, transfer.to_address, transfer.amount)
            logger.debug(
                f"  credit {transfer.role.value}: {transfer.to_address[:8]}... "
                f"+{transfer.amount} (balance {new_balance})"
            )
        await db.flush()

        digest = hashlib.sha256(
            "|".join(
                [tip_id, network.value]
                + [f"{t.role.value}:{t.to_address}:{t.amount}" for t in transfers]
            ).encode()
        ).hexdigest()
        return f"ledger:{digest[:32]}"


async def get_balance(db: AsyncSession, network: Network, address: str) -> int:
    """Credited balance for an address (0 if it never received anything)."""
    result = await db.execute(
        select(Balance.amount).where(
            Balance.network == network.value,
            Balance.address == address,
        )
    )
    amount = result.scalar_one_or_none()
    return amount or 0
