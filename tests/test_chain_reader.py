"""Unit tests for view-call readers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from web3.exceptions import ContractLogicError, Web3Exception

from indexer.chain import StaticChainReader, Web3ChainReader, try_call
from indexer.errors import ViewCallReverted
from tests.utils.events import ALICE, TOKEN


class _FakeFunction:
    def __init__(self, result: Any, calls: list[tuple[Any, ...]], args: tuple[Any, ...]) -> None:
        self._result = result
        self._calls = calls
        self._args = args

    def call(self, block_identifier: Any = "latest") -> Any:
        self._calls.append((self._args, block_identifier))
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


class _FakeFunctions:
    def __init__(self, results: dict[str, Any], calls: list[tuple[Any, ...]]) -> None:
        self._results = results
        self._calls = calls

    def __getitem__(self, name: str) -> Any:
        return lambda *args: _FakeFunction(self._results[name], self._calls, args)


class _FakeContract:
    def __init__(self, results: dict[str, Any], calls: list[tuple[Any, ...]]) -> None:
        self.functions = _FakeFunctions(results, calls)


class _FakeEth:
    def __init__(self, results: dict[str, Any], code: Any) -> None:
        self._results = results
        self._code = code
        self.calls: list[tuple[Any, ...]] = []

    def get_code(self, address: str, block_identifier: Any = "latest") -> bytes:
        if isinstance(self._code, Exception):
            raise self._code
        return self._code

    def contract(self, address: str, abi: list[dict[str, Any]]) -> _FakeContract:
        return _FakeContract(self._results, self.calls)


class _FakeWeb3:
    def __init__(self, results: dict[str, Any], code: Any = b"\x60\x80") -> None:
        self.eth = _FakeEth(results, code)


def test_static_reader_answers_recorded_calls_and_reverts_otherwise() -> None:
    reader = StaticChainReader(contracts=[TOKEN])
    reader.set_calls(TOKEN, {"name": "Token", "decimals": 6})
    reader.set_call(TOKEN, "balanceOf", 5, ALICE)

    assert reader.is_contract(TOKEN) is True
    assert reader.is_contract(ALICE) is False
    assert reader.call(TOKEN, "decimals") == 6
    assert reader.call(TOKEN, "balanceOf", ALICE) == 5
    with pytest.raises(ViewCallReverted, match="no recorded result"):
        reader.call(TOKEN, "symbol")
    assert reader.call_count == 3


def test_try_call_substitutes_default_on_revert(caplog: pytest.LogCaptureFixture) -> None:
    reader = StaticChainReader()
    assert try_call(reader, TOKEN, "decimals", 18) == 18
    assert "reverted" in caplog.text


def test_static_reader_loads_fixture_file(tmp_path: Path) -> None:
    fixture = tmp_path / "chain.json"
    fixture.write_text(
        json.dumps(
            {
                "contracts": [TOKEN],
                "calls": [
                    {"address": TOKEN, "function": "symbol", "result": "TKN"},
                    {"address": TOKEN, "function": "totalSupplyAt", "args": [5], "result": 100},
                ],
            }
        ),
        encoding="utf-8",
    )
    reader = StaticChainReader.from_fixture(fixture)
    assert reader.is_contract(TOKEN)
    assert reader.call(TOKEN, "symbol") == "TKN"
    assert reader.call(TOKEN, "totalSupplyAt", 5) == 100


def test_web3_reader_calls_registered_view_functions() -> None:
    w3 = _FakeWeb3({"decimals": 6})
    reader = Web3ChainReader("http://unused", w3=w3)  # type: ignore[arg-type]
    assert reader.call(TOKEN, "decimals", block=12) == 6
    assert w3.eth.calls == [((), 12)]
    assert reader.is_contract(TOKEN) is True


def test_web3_reader_maps_reverts_to_view_call_reverted() -> None:
    w3 = _FakeWeb3({"decimals": ContractLogicError("execution reverted")})
    reader = Web3ChainReader("http://unused", w3=w3)  # type: ignore[arg-type]
    with pytest.raises(ViewCallReverted, match="decimals reverted"):
        reader.call(TOKEN, "decimals")
    with pytest.raises(ViewCallReverted, match="No ABI fragment"):
        reader.call(TOKEN, "unknownFunction")


def test_web3_reader_maps_code_lookup_failures_to_view_call_reverted() -> None:
    w3 = _FakeWeb3({}, code=Web3Exception("header not found"))
    reader = Web3ChainReader("http://unused", w3=w3)  # type: ignore[arg-type]
    with pytest.raises(ViewCallReverted, match="get_code failed"):
        reader.is_contract(TOKEN, block=5)
