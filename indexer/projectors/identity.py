"""Identity projector: keys and claims held by identity contracts."""

from __future__ import annotations

import logging

from web3 import Web3

from backend.db.models import Identity, IdentityClaim, IdentityKey
from indexer.accounts import fetch_account, touch_accounts
from indexer.addresses import normalize_hex
from indexer.context import ProjectionContext
from indexer.errors import NotFoundOnMutationError

logger = logging.getLogger(__name__)

KEY_PURPOSES: dict[int, str] = {1: "MANAGEMENT", 2: "ACTION", 3: "CLAIM", 4: "ENCRYPTION"}
KEY_TYPES: dict[int, str] = {1: "ECDSA", 2: "RSA"}


def key_id(identity_id: str, key: str) -> str:
    return f"{identity_id}-{key}"


def claim_id(identity_id: str, claim: str) -> str:
    return f"{identity_id}-{claim}"


def signature_hash(signature: str) -> str:
    return normalize_hex(Web3.keccak(hexstr=signature))


def seed_identity(ctx: ProjectionContext, address: str, *, wallet: str | None, factory_id: str | None) -> Identity:
    """Load or create the identity and link it from its own and its wallet's account."""
    identity = ctx.store.get(Identity, address)
    if identity is None:
        identity = ctx.store.add(
            Identity(
                id=address,
                wallet=wallet,
                factory_id=factory_id,
                key_count=0,
                active_claims_count=0,
                created_at=ctx.timestamp,
                last_activity=ctx.timestamp,
            )
        )
        logger.info("Seeded identity %s for %s", address, wallet or "unknown wallet")
    else:
        if identity.wallet is None:
            identity.wallet = wallet
        if identity.factory_id is None:
            identity.factory_id = factory_id

    fetch_account(ctx, address).identity_ref = address
    if wallet is not None:
        fetch_account(ctx, wallet).identity_ref = address
    return identity


def _load_identity(ctx: ProjectionContext) -> Identity:
    # Identities can be watched without a factory; seed them on first event.
    identity = seed_identity(ctx, ctx.event.address, wallet=None, factory_id=None)
    identity.last_activity = ctx.timestamp
    touch_accounts(ctx, ctx.event.tx_from)
    return identity


def handle_key_added(ctx: ProjectionContext) -> None:
    event = ctx.event
    key = event.bytes_param("key")
    purpose = event.uint_param("purpose")
    key_type = event.uint_param("keyType")
    identity = _load_identity(ctx)

    record = ctx.store.get(IdentityKey, key_id(identity.id, key))
    if record is None:
        record = ctx.store.add(
            IdentityKey(
                id=key_id(identity.id, key),
                identity_id=identity.id,
                key=key,
                purpose=KEY_PURPOSES.get(purpose, str(purpose)),
                key_type=KEY_TYPES.get(key_type, str(key_type)),
                added_at=ctx.timestamp,
            )
        )
        identity.key_count += 1
        return
    record.purpose = KEY_PURPOSES.get(purpose, str(purpose))
    record.key_type = KEY_TYPES.get(key_type, str(key_type))


def handle_key_removed(ctx: ProjectionContext) -> None:
    key = ctx.event.bytes_param("key")
    identity = _load_identity(ctx)
    record = ctx.store.get(IdentityKey, key_id(identity.id, key))
    if record is None:
        logger.warning("Identity %s: key %s removed but never added", identity.id, key)
        return
    ctx.store.remove(record)
    identity.key_count -= 1


def _upsert_claim(ctx: ProjectionContext) -> None:
    event = ctx.event
    claim = event.bytes_param("claimId")
    topic = event.uint_param("topic")
    issuer = event.address_param("issuer")
    signature = event.bytes_param("signature")
    data = event.bytes_param("data")
    uri = event.str_param("uri", default="")
    identity = _load_identity(ctx)
    touch_accounts(ctx, issuer)

    record = ctx.store.get(IdentityClaim, claim_id(identity.id, claim))
    if record is None:
        record = ctx.store.add(
            IdentityClaim(
                id=claim_id(identity.id, claim),
                identity_id=identity.id,
                claim_id=claim,
                topic=topic,
                issuer=issuer,
                signature=signature,
                data=data,
                uri=uri,
                revoked=False,
                issued_at=ctx.timestamp,
                last_activity=ctx.timestamp,
            )
        )
        identity.active_claims_count += 1
        return

    if record.revoked:
        record.revoked = False
        identity.active_claims_count += 1
    record.topic = topic
    record.issuer = issuer
    record.signature = signature
    record.data = data
    record.uri = uri
    record.last_activity = ctx.timestamp


def handle_claim_added(ctx: ProjectionContext) -> None:
    _upsert_claim(ctx)


def handle_claim_changed(ctx: ProjectionContext) -> None:
    _upsert_claim(ctx)


def _revoke(identity: Identity, record: IdentityClaim, timestamp: int) -> None:
    if record.revoked:
        logger.warning("Identity %s: claim %s already revoked", identity.id, record.claim_id)
        return
    record.revoked = True
    record.last_activity = timestamp
    identity.active_claims_count -= 1


def handle_claim_removed(ctx: ProjectionContext) -> None:
    claim = ctx.event.bytes_param("claimId")
    identity = _load_identity(ctx)
    record = ctx.store.get(IdentityClaim, claim_id(identity.id, claim))
    if record is None:
        raise NotFoundOnMutationError(f"Identity {identity.id} has no claim {claim}")
    _revoke(identity, record, ctx.timestamp)


def handle_claim_revoked(ctx: ProjectionContext) -> None:
    """The event carries the keccak hash of the revoked claim signature."""
    revoked_hash = ctx.event.bytes_param("signature")
    identity = _load_identity(ctx)
    for record in ctx.store.find(IdentityClaim, identity_id=identity.id):
        if signature_hash(record.signature) == revoked_hash:
            _revoke(identity, record, ctx.timestamp)
            return
    logger.warning("Identity %s: no claim matches revoked signature %s", identity.id, revoked_hash)
