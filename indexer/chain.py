"""Read-only on-chain view calls used while seeding new entities."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol, TypeVar

from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from indexer.addresses import normalize_address
from indexer.errors import ViewCallReverted

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _fn(name: str, outputs: list[str], inputs: Iterable[str] = ()) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [{"name": f"arg{i}", "type": kind} for i, kind in enumerate(inputs)],
        "outputs": [{"name": "", "type": kind} for kind in outputs],
    }


_FLOW_TUPLE = {
    "name": "",
    "type": "tuple[]",
    "components": [
        {"name": "asset", "type": "address"},
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "amount", "type": "uint256"},
        {"name": "externalChainId", "type": "uint64"},
    ],
}

# One ABI fragment per view function the projectors read.
VIEW_FUNCTIONS: dict[str, dict[str, Any]] = {
    "name": _fn("name", ["string"]),
    "symbol": _fn("symbol", ["string"]),
    "decimals": _fn("decimals", ["uint8"]),
    "maturityDate": _fn("maturityDate", ["uint256"]),
    "faceValue": _fn("faceValue", ["uint256"]),
    "underlyingAsset": _fn("underlyingAsset", ["address"]),
    "equityClass": _fn("equityClass", ["string"]),
    "equityCategory": _fn("equityCategory", ["string"]),
    "fundClass": _fn("fundClass", ["string"]),
    "fundCategory": _fn("fundCategory", ["string"]),
    "managementFeeBps": _fn("managementFeeBps", ["uint16"]),
    "token": _fn("token", ["address"]),
    "rate": _fn("rate", ["uint256"]),
    "startDate": _fn("startDate", ["uint256"]),
    "endDate": _fn("endDate", ["uint256"]),
    "interval": _fn("interval", ["uint256"]),
    "allPeriods": _fn("allPeriods", ["uint256[]"]),
    "periodEnd": _fn("periodEnd", ["uint256"], ["uint256"]),
    "totalSupplyAt": _fn("totalSupplyAt", ["uint256"], ["uint256"]),
    "yieldBasisPerUnit": _fn("yieldBasisPerUnit", ["uint256"], ["address"]),
    "merkleRoot": _fn("merkleRoot", ["bytes32"]),
    "startTime": _fn("startTime", ["uint256"]),
    "endTime": _fn("endTime", ["uint256"]),
    "distributionIpfsHash": _fn("distributionIpfsHash", ["string"]),
    "claimPeriodEnd": _fn("claimPeriodEnd", ["uint256"]),
    "vestingDuration": _fn("vestingDuration", ["uint256"]),
    "cliffDuration": _fn("cliffDuration", ["uint256"]),
    "distributionCap": _fn("distributionCap", ["uint256"]),
    "owner": _fn("owner", ["address"]),
    "required": _fn("required", ["uint256"]),
    "getSigners": _fn("getSigners", ["address[]"]),
    "cutoffDate": _fn("cutoffDate", ["uint256"]),
    "autoExecute": _fn("autoExecute", ["bool"]),
    "hashlock": _fn("hashlock", ["bytes32"]),
    "flows": {
        "type": "function",
        "name": "flows",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [_FLOW_TUPLE],
    },
}


class ChainReader(Protocol):
    """Minimal view-call surface needed to seed entities."""

    def is_contract(self, address: str, block: int | None = None) -> bool:
        ...

    def call(self, address: str, function: str, *args: Any, block: int | None = None) -> Any:
        ...


def try_call(
    reader: ChainReader,
    address: str,
    function: str,
    default: T,
    *args: Any,
    block: int | None = None,
) -> Any:
    """Perform a view call, substituting ``default`` when it reverts."""
    try:
        return reader.call(address, function, *args, block=block)
    except ViewCallReverted as exc:
        logger.warning(
            "View call %s on %s reverted; using default %r (%s)",
            function,
            address,
            default,
            exc,
        )
        return default


class Web3ChainReader:
    """ChainReader backed by a JSON-RPC endpoint through web3.py."""

    def __init__(self, rpc_url: str, *, w3: Web3 | None = None) -> None:
        self._w3 = w3 if w3 is not None else Web3(Web3.HTTPProvider(rpc_url))

    def is_contract(self, address: str, block: int | None = None) -> bool:
        checksum = Web3.to_checksum_address(address)
        try:
            code = self._w3.eth.get_code(checksum, block_identifier=block if block is not None else "latest")
        except Web3Exception as exc:
            raise ViewCallReverted(f"get_code failed on {address}: {exc}") from exc
        return len(code) > 0

    def call(self, address: str, function: str, *args: Any, block: int | None = None) -> Any:
        fragment = VIEW_FUNCTIONS.get(function)
        if fragment is None:
            raise ViewCallReverted(f"No ABI fragment registered for {function}")
        contract = self._w3.eth.contract(address=Web3.to_checksum_address(address), abi=[fragment])
        converted = [
            Web3.to_checksum_address(arg) if isinstance(arg, str) and Web3.is_address(arg) else arg
            for arg in args
        ]
        try:
            return contract.functions[function](*converted).call(
                block_identifier=block if block is not None else "latest"
            )
        except (ContractLogicError, BadFunctionCallOutput) as exc:
            raise ViewCallReverted(f"{function} reverted on {address}") from exc
        except Web3Exception as exc:
            raise ViewCallReverted(f"{function} failed on {address}: {exc}") from exc


class StaticChainReader:
    """ChainReader answering from recorded results; unknown calls revert.

    Used for deterministic replays from recorded fixtures and in tests.
    """

    def __init__(
        self,
        *,
        contracts: Iterable[str] = (),
        calls: Mapping[tuple[str, str, tuple[Any, ...]], Any] | None = None,
    ) -> None:
        self._contracts = {normalize_address(address) for address in contracts}
        self._calls: dict[tuple[str, str, tuple[Any, ...]], Any] = {}
        for (address, function, args), result in (calls or {}).items():
            self.set_call(address, function, result, *args)
        self.call_count = 0

    def add_contract(self, address: str) -> None:
        self._contracts.add(normalize_address(address))

    def set_call(self, address: str, function: str, result: Any, *args: Any) -> None:
        self._calls[(normalize_address(address), function, tuple(args))] = result

    def set_calls(self, address: str, results: Mapping[str, Any]) -> None:
        for function, result in results.items():
            self.set_call(address, function, result)

    def is_contract(self, address: str, block: int | None = None) -> bool:
        return normalize_address(address) in self._contracts

    def call(self, address: str, function: str, *args: Any, block: int | None = None) -> Any:
        self.call_count += 1
        key = (normalize_address(address), function, tuple(args))
        if key not in self._calls:
            raise ViewCallReverted(f"{function}{tuple(args)} has no recorded result for {address}")
        return self._calls[key]

    @classmethod
    def from_fixture(cls, path: Path) -> "StaticChainReader":
        """Load ``{"contracts": [...], "calls": [{"address", "function", "args", "result"}]}``."""
        payload = json.loads(path.read_text(encoding="utf-8"))
        reader = cls(contracts=payload.get("contracts", []))
        for entry in payload.get("calls", []):
            args = tuple(
                normalize_address(arg) if isinstance(arg, str) and Web3.is_address(arg) else arg
                for arg in entry.get("args", [])
            )
            reader.set_call(entry["address"], entry["function"], entry["result"], *args)
        return reader
