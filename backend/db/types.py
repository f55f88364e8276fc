"""Portable column types for on-chain integer amounts and their decimal views."""

from __future__ import annotations

from decimal import Decimal
import logging
from typing import Any

from sqlalchemy import JSON, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator, TypeEngine

logger = logging.getLogger(__name__)

# uint256 needs 78 digits; one more keeps room for the sign of signed deltas.
EXACT_PRECISION = 79


class ExactAmount(TypeDecorator[int]):
    """Arbitrary-size integer stored as NUMERIC on PostgreSQL and text elsewhere."""

    impl = Numeric
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Numeric(EXACT_PRECISION, 0))
        return dialect.type_descriptor(String(EXACT_PRECISION + 1))

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"ExactAmount expects int, got {type(value).__name__}")
        if dialect.name == "postgresql":
            return Decimal(value)
        return str(value)

    def process_result_value(self, value: Any, dialect: Dialect) -> int | None:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return int(value)
        return int(str(value))


class ScaledDecimal(TypeDecorator[Decimal]):
    """Unbounded-precision decimal stored as NUMERIC on PostgreSQL and text elsewhere."""

    impl = Numeric
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Numeric())
        return dialect.type_descriptor(String(200))

    def process_bind_param(self, value: Any, dialect: Dialect) -> Any:
        if value is None:
            return None
        decimal_value = value if isinstance(value, Decimal) else Decimal(str(value))
        if dialect.name == "postgresql":
            return decimal_value
        return format(decimal_value, "f")

    def process_result_value(self, value: Any, dialect: Dialect) -> Decimal | None:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))


AddressList = JSON().with_variant(JSONB(), "postgresql")
