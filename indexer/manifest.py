"""Off-chain allocation manifest fetch and parsing for airdrop deployments."""

from __future__ import annotations

from dataclasses import dataclass
from http.client import HTTPException
import json
import logging
from typing import Any, Callable, Optional, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from web3 import Web3

from indexer.addresses import normalize_address

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllocationEntry:
    """One recipient allocation read from a manifest."""

    recipient: str
    amount_exact: int
    index: int | None = None


@dataclass(frozen=True)
class ParsedManifest:
    entries: tuple[AllocationEntry, ...]
    skipped: int


class ManifestFetcher(Protocol):
    """Fetch raw manifest bytes by content identifier; ``None`` means no manifest."""

    def fetch(self, cid: str) -> Optional[bytes]:
        ...


class IpfsGatewayFetcher:
    """HTTP gateway fetcher with bounded retries; failures read as no manifest."""

    def __init__(
        self,
        *,
        gateway_url: str,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        requester: Optional[Callable[[str, float], bytes]] = None,
    ) -> None:
        self._gateway_url = gateway_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max_attempts
        self._requester = requester
        self._call_count = 0

    @property
    def call_count(self) -> int:
        """Return gateway request count."""
        return self._call_count

    def _request(self, url: str) -> bytes:
        self._call_count += 1
        if self._requester is not None:
            return self._requester(url, self._timeout_seconds)
        request = Request(url=url, headers={"Accept": "application/json"}, method="GET")
        with urlopen(request, timeout=self._timeout_seconds) as response:
            return response.read()

    def fetch(self, cid: str) -> Optional[bytes]:
        cid = cid.strip()
        if not cid:
            return None
        url = f"{self._gateway_url}/{quote(cid, safe='')}"

        last_error: Exception | None = None
        for _ in range(self._max_attempts):
            try:
                return self._request(url)
            except (HTTPError, URLError, HTTPException, TimeoutError, OSError, ValueError) as exc:
                last_error = exc
                continue

        logger.warning("Manifest %s unavailable after %d attempts: %s", cid, self._max_attempts, last_error)
        return None


class DisabledManifestFetcher:
    """Fetcher used when manifest I/O is switched off."""

    def fetch(self, cid: str) -> Optional[bytes]:
        if cid:
            logger.info("Manifest fetch disabled; ignoring %s", cid)
        return None


def _parse_amount(raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValueError("boolean amount")
    if isinstance(raw, int):
        amount = raw
    elif isinstance(raw, str) and raw.strip().isdigit():
        amount = int(raw.strip())
    else:
        raise ValueError(f"non-numeric amount {raw!r}")
    if amount < 0:
        raise ValueError("negative amount")
    return amount


def _parse_index(raw: Any) -> int | None:
    if raw is None:
        return None
    return _parse_amount(raw)


def parse_allocation_manifest(payload: bytes | str) -> ParsedManifest:
    """Parse ``{address: {"amount": "...", "index": n, "proof": [...]}}`` documents.

    A bare amount in place of the entry object is accepted. Entries with a bad
    address, a non-numeric amount or the wrong shape are skipped one by one.
    """
    try:
        document = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Allocation manifest is not valid JSON: %s", exc)
        return ParsedManifest(entries=(), skipped=0)

    if not isinstance(document, dict):
        logger.warning("Allocation manifest must be a JSON object, got %s", type(document).__name__)
        return ParsedManifest(entries=(), skipped=0)

    entries: dict[str, AllocationEntry] = {}
    skipped = 0
    for key, value in document.items():
        if not Web3.is_address(key):
            logger.warning("Skipping manifest entry with bad address %r", key)
            skipped += 1
            continue
        recipient = normalize_address(key)
        try:
            if isinstance(value, dict):
                amount = _parse_amount(value.get("amount"))
                index = _parse_index(value.get("index"))
            else:
                amount = _parse_amount(value)
                index = None
        except ValueError as exc:
            logger.warning("Skipping manifest entry for %s: %s", recipient, exc)
            skipped += 1
            continue
        if recipient in entries:
            logger.warning("Skipping duplicate manifest entry for %s", recipient)
            skipped += 1
            continue
        entries[recipient] = AllocationEntry(recipient=recipient, amount_exact=amount, index=index)

    ordered = tuple(entries[recipient] for recipient in sorted(entries))
    return ParsedManifest(entries=ordered, skipped=skipped)
