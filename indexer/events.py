"""Decoded contract event envelope delivered to the projection core."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from indexer.addresses import normalize_address, normalize_hex
from indexer.errors import MalformedEventError


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith(("0x", "-0x")):
            return int(text, 16)
        return int(text, 10)
    raise ValueError(f"not an integer: {value!r}")


@dataclass(frozen=True)
class ChainEvent:
    """One finalized, ABI-decoded log with its on-chain coordinates."""

    address: str
    name: str
    block_number: int
    block_timestamp: int
    tx_hash: str
    log_index: int
    tx_from: str
    params: Mapping[str, Any] = field(default_factory=dict)

    @property
    def event_id(self) -> str:
        return f"{self.tx_hash}-{self.log_index}"

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)

    def _raw(self, name: str) -> Any:
        if name not in self.params:
            raise MalformedEventError(f"{self.name} at {self.event_id} is missing parameter '{name}'")
        return self.params[name]

    def has_param(self, name: str) -> bool:
        return name in self.params

    def address_param(self, name: str) -> str:
        raw = self._raw(name)
        try:
            return normalize_address(raw)
        except ValueError as exc:
            raise MalformedEventError(f"{self.name} at {self.event_id}: bad address '{name}': {exc}") from exc

    def address_list_param(self, name: str) -> list[str]:
        raw = self._raw(name)
        if not isinstance(raw, (list, tuple)):
            raise MalformedEventError(f"{self.name} at {self.event_id}: '{name}' is not a list")
        try:
            return [normalize_address(item) for item in raw]
        except ValueError as exc:
            raise MalformedEventError(f"{self.name} at {self.event_id}: bad address in '{name}': {exc}") from exc

    def int_param(self, name: str) -> int:
        raw = self._raw(name)
        try:
            return _coerce_int(raw)
        except ValueError as exc:
            raise MalformedEventError(f"{self.name} at {self.event_id}: bad integer '{name}': {exc}") from exc

    def uint_param(self, name: str) -> int:
        value = self.int_param(name)
        if value < 0:
            raise MalformedEventError(f"{self.name} at {self.event_id}: '{name}' must be non-negative")
        return value

    def int_list_param(self, name: str) -> list[int]:
        raw = self._raw(name)
        if not isinstance(raw, (list, tuple)):
            raise MalformedEventError(f"{self.name} at {self.event_id}: '{name}' is not a list")
        try:
            values = [_coerce_int(item) for item in raw]
        except ValueError as exc:
            raise MalformedEventError(f"{self.name} at {self.event_id}: bad integer in '{name}': {exc}") from exc
        if any(value < 0 for value in values):
            raise MalformedEventError(f"{self.name} at {self.event_id}: '{name}' has negative entries")
        return values

    def bool_param(self, name: str) -> bool:
        raw = self._raw(name)
        if isinstance(raw, bool):
            return raw
        raise MalformedEventError(f"{self.name} at {self.event_id}: '{name}' is not a boolean")

    def bytes_param(self, name: str) -> str:
        raw = self._raw(name)
        try:
            return normalize_hex(raw)
        except ValueError as exc:
            raise MalformedEventError(f"{self.name} at {self.event_id}: bad bytes '{name}': {exc}") from exc

    def str_param(self, name: str, default: str | None = None) -> str:
        if name not in self.params and default is not None:
            return default
        raw = self._raw(name)
        if not isinstance(raw, str):
            raise MalformedEventError(f"{self.name} at {self.event_id}: '{name}' is not a string")
        return raw

    def normalized(self) -> "ChainEvent":
        """Return a copy with canonical lowercase address and hash coordinates."""
        try:
            return replace(
                self,
                address=normalize_address(self.address),
                tx_from=normalize_address(self.tx_from),
                tx_hash=normalize_hex(self.tx_hash),
            )
        except ValueError as exc:
            raise MalformedEventError(f"Undecodable event coordinates for {self.name}: {exc}") from exc

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ChainEvent":
        """Build an event from one decoded JSON object (replay files, fixtures)."""
        try:
            address = normalize_address(payload["address"])
            tx_from = normalize_address(payload.get("tx_from", payload.get("from", address)))
            tx_hash = normalize_hex(payload["tx_hash"])
            name = payload["name"]
            block_number = _coerce_int(payload["block_number"])
            block_timestamp = _coerce_int(payload["block_timestamp"])
            log_index = _coerce_int(payload["log_index"])
        except (KeyError, ValueError) as exc:
            raise MalformedEventError(f"Undecodable event envelope: {exc}") from exc
        params = payload.get("params", {})
        if not isinstance(name, str) or not name or not isinstance(params, Mapping):
            raise MalformedEventError("Event envelope needs a name and a params object")
        return cls(
            address=address,
            name=name,
            block_number=block_number,
            block_timestamp=block_timestamp,
            tx_hash=tx_hash,
            log_index=log_index,
            tx_from=tx_from,
            params=dict(params),
        )
