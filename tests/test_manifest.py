"""Unit tests for allocation manifest fetching and parsing."""

from __future__ import annotations

from http.client import IncompleteRead, InvalidURL
import json
from typing import Any
from urllib.error import URLError

import pytest

import indexer.manifest as manifest_module
from indexer.manifest import DisabledManifestFetcher, IpfsGatewayFetcher, parse_allocation_manifest
from tests.utils.events import ALICE, BOB, CAROL


def test_parse_manifest_accepts_objects_and_bare_amounts() -> None:
    payload = json.dumps(
        {
            BOB: {"amount": "200", "index": 1, "proof": []},
            ALICE: "100",
        }
    )
    parsed = parse_allocation_manifest(payload)
    assert parsed.skipped == 0
    assert [entry.recipient for entry in parsed.entries] == sorted([ALICE, BOB])
    by_recipient = {entry.recipient: entry for entry in parsed.entries}
    assert by_recipient[ALICE].amount_exact == 100
    assert by_recipient[ALICE].index is None
    assert by_recipient[BOB].amount_exact == 200
    assert by_recipient[BOB].index == 1


def test_parse_manifest_skips_bad_entries_individually() -> None:
    payload = json.dumps(
        {
            "not-an-address": "1",
            ALICE: {"amount": "abc"},
            BOB: {"amount": -5},
            CAROL: {"amount": 7},
        }
    )
    parsed = parse_allocation_manifest(payload)
    assert parsed.skipped == 3
    assert [(entry.recipient, entry.amount_exact) for entry in parsed.entries] == [(CAROL, 7)]


def test_parse_manifest_tolerates_garbage_documents() -> None:
    assert parse_allocation_manifest(b"{not json").entries == ()
    assert parse_allocation_manifest("[1, 2]").entries == ()


def test_gateway_fetcher_retries_then_gives_up() -> None:
    calls: list[str] = []

    def requester(url: str, timeout: float) -> bytes:
        calls.append(url)
        raise URLError("offline")

    fetcher = IpfsGatewayFetcher(gateway_url="https://gateway.test/ipfs/", max_attempts=3, requester=requester)
    assert fetcher.fetch("QmCid") is None
    assert calls == ["https://gateway.test/ipfs/QmCid"] * 3
    assert fetcher.call_count == 3


def test_gateway_fetcher_returns_first_successful_payload() -> None:
    responses = iter([URLError("flaky"), b"{}"])

    def requester(url: str, timeout: float) -> bytes:
        response = next(responses)
        if isinstance(response, Exception):
            raise response
        return response

    fetcher = IpfsGatewayFetcher(gateway_url="https://gateway.test/ipfs", requester=requester)
    assert fetcher.fetch("QmCid") == b"{}"
    assert fetcher.call_count == 2
    assert fetcher.fetch("  ") is None


def test_gateway_fetcher_quotes_content_identifier() -> None:
    calls: list[str] = []

    def requester(url: str, timeout: float) -> bytes:
        calls.append(url)
        return b"{}"

    fetcher = IpfsGatewayFetcher(gateway_url="https://gateway.test/ipfs", requester=requester)
    assert fetcher.fetch("Qm bad/cid\n") == b"{}"
    assert calls == ["https://gateway.test/ipfs/Qm%20bad%2Fcid"]


def test_gateway_fetcher_absorbs_protocol_errors() -> None:
    failures = iter([IncompleteRead(b"{\"0x"), InvalidURL("bad url"), ValueError("unknown url type")])

    def requester(url: str, timeout: float) -> bytes:
        raise next(failures)

    fetcher = IpfsGatewayFetcher(gateway_url="https://gateway.test/ipfs", max_attempts=3, requester=requester)
    assert fetcher.fetch("QmCid") is None
    assert fetcher.call_count == 3


def test_gateway_fetcher_absorbs_urlopen_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    requested: list[str] = []

    def fake_urlopen(request: Any, timeout: float) -> Any:
        requested.append(request.full_url)
        raise InvalidURL("URL can't contain control characters")

    monkeypatch.setattr(manifest_module, "urlopen", fake_urlopen)
    fetcher = IpfsGatewayFetcher(gateway_url="http://127.0.0.1:9/ipfs", max_attempts=1)
    assert fetcher.fetch("Qm bad cid") is None
    assert requested == ["http://127.0.0.1:9/ipfs/Qm%20bad%20cid"]


def test_disabled_fetcher_never_returns_documents() -> None:
    assert DisabledManifestFetcher().fetch("QmCid") is None
