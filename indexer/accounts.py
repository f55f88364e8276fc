"""Identity registry: one Account per on-chain address."""

from __future__ import annotations

from decimal import Decimal
import logging

from backend.db.models import Account
from indexer.context import ProjectionContext
from indexer.errors import ViewCallReverted

logger = logging.getLogger(__name__)


def fetch_account(ctx: ProjectionContext, address: str) -> Account:
    """Load or create the account for ``address``; contract status is decided once."""
    account = ctx.store.get(Account, address)
    if account is not None:
        return account

    try:
        is_contract = ctx.chain.is_contract(address, block=ctx.block_number)
    except ViewCallReverted as exc:
        logger.warning("Code lookup for %s failed; recording it as a wallet (%s)", address, exc)
        is_contract = False
    account = Account(
        id=address,
        is_contract=is_contract,
        total_balance_exact=0,
        total_balance=Decimal(0),
        paused_balance_exact=0,
        paused_balance=Decimal(0),
        balances_count=0,
        paused_balances_count=0,
        activity_event_count=0,
        first_seen_block=ctx.block_number,
        last_activity=ctx.timestamp,
    )
    logger.debug("Registered account %s (contract=%s)", address, is_contract)
    return ctx.store.add(account)


def touch_account(ctx: ProjectionContext, address: str) -> Account:
    """Fetch the account and record that the current event involved it."""
    account = fetch_account(ctx, address)
    account.activity_event_count += 1
    account.last_activity = ctx.timestamp
    return account


def touch_accounts(ctx: ProjectionContext, *addresses: str) -> list[Account]:
    """Touch each distinct address once, in first-seen order."""
    seen: dict[str, Account] = {}
    for address in addresses:
        if address not in seen:
            seen[address] = touch_account(ctx, address)
    return list(seen.values())
