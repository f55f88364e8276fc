"""Access-control role registry over ordered, duplicate-free address sets."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Mapping

from web3 import Web3

logger = logging.getLogger(__name__)


def role_hash(name: str) -> str:
    """keccak256 of the role name, as used by OpenZeppelin AccessControl."""
    return Web3.to_hex(Web3.keccak(text=name)).lower()


DEFAULT_ADMIN_ROLE = "0x" + "00" * 32
SUPPLY_MANAGEMENT_ROLE = role_hash("SUPPLY_MANAGEMENT_ROLE")
USER_MANAGEMENT_ROLE = role_hash("USER_MANAGEMENT_ROLE")
AUDITOR_ROLE = role_hash("AUDITOR_ROLE")
SIGNER_ROLE = role_hash("SIGNER_ROLE")

ASSET_ROLE_FIELDS: Mapping[str, str] = {
    DEFAULT_ADMIN_ROLE: "admins",
    SUPPLY_MANAGEMENT_ROLE: "supply_managers",
    USER_MANAGEMENT_ROLE: "user_managers",
    AUDITOR_ROLE: "auditors",
}

VAULT_ROLE_FIELDS: Mapping[str, str] = {
    DEFAULT_ADMIN_ROLE: "admins",
    SIGNER_ROLE: "signers",
}


class OrderedAddressSet:
    """Immutable insertion-ordered set of addresses."""

    __slots__ = ("_members",)

    def __init__(self, members: Iterable[str] = ()) -> None:
        ordered: dict[str, None] = {}
        for member in members:
            ordered.setdefault(member, None)
        self._members = tuple(ordered)

    def __contains__(self, address: object) -> bool:
        return address in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OrderedAddressSet):
            return self._members == other._members
        return NotImplemented

    def __repr__(self) -> str:
        return f"OrderedAddressSet({list(self._members)!r})"

    def with_member(self, address: str) -> "OrderedAddressSet":
        if address in self._members:
            return self
        return OrderedAddressSet((*self._members, address))

    def without_member(self, address: str) -> "OrderedAddressSet":
        if address not in self._members:
            return self
        return OrderedAddressSet(member for member in self._members if member != address)

    def as_list(self) -> list[str]:
        return list(self._members)


def grant(entity: Any, field_name: str, holder: str) -> bool:
    """Add ``holder`` to the role set stored on ``entity``; return whether it changed."""
    current = OrderedAddressSet(getattr(entity, field_name) or ())
    updated = current.with_member(holder)
    if updated is current:
        return False
    setattr(entity, field_name, updated.as_list())
    return True


def revoke(entity: Any, field_name: str, holder: str) -> bool:
    """Remove ``holder`` from the role set stored on ``entity``; return whether it changed."""
    current = OrderedAddressSet(getattr(entity, field_name) or ())
    updated = current.without_member(holder)
    if updated is current:
        return False
    setattr(entity, field_name, updated.as_list())
    return True


def role_field(role: str, fields: Mapping[str, str]) -> str | None:
    """Map a bytes32 role hash onto the entity field holding its members."""
    field_name = fields.get(role.lower())
    if field_name is None:
        logger.debug("Ignoring unmapped role %s", role)
    return field_name
