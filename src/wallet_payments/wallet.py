"""Wallet plugin result shapes and payment token extraction.

Google Pay returns the processor token nested under
``paymentMethodData.tokenizationData.token``; Apple Pay plugins hand back a
flat ``token`` field. Each known shape has a parser; parsers are tried in
order and the first match wins.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Tuple, Union

from .errors import TokenExtractionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NestedTokenization:
    """``{"paymentMethodData": {"tokenizationData": {"token": ...}}}`` (Google Pay)."""
    token: str
    provider: str = "google_pay"


@dataclass(frozen=True)
class FlatToken:
    """``{"token": ...}`` (Apple Pay and most native plugins)."""
    token: str
    provider: str = "apple_pay"


@dataclass(frozen=True)
class Unrecognized:
    keys: Tuple[str, ...] = ()


WalletResult = Union[NestedTokenization, FlatToken, Unrecognized]


def _unwrap_gateway_token(token: str) -> str:
    # Google Pay with the Stripe gateway delivers a JSON token object; the
    # processor token is its id
    if token.lstrip().startswith("{"):
        try:
            document = json.loads(token)
        except ValueError:
            return token
        if isinstance(document, dict) and isinstance(document.get("id"), str) and document["id"]:
            return document["id"]
    return token


def _parse_nested(result: Mapping[str, Any]) -> Optional[WalletResult]:
    method_data = result.get("paymentMethodData")
    if not isinstance(method_data, Mapping):
        return None
    tokenization = method_data.get("tokenizationData")
    if not isinstance(tokenization, Mapping):
        return None
    token = tokenization.get("token")
    if not isinstance(token, str) or not token.strip():
        return None
    return NestedTokenization(token=_unwrap_gateway_token(token.strip()))


def _parse_flat(result: Mapping[str, Any]) -> Optional[WalletResult]:
    token = result.get("token")
    if not isinstance(token, str) or not token.strip():
        return None
    return FlatToken(token=token.strip())


# Order matters: the nested shape is checked before the flat one
WALLET_SHAPES: Tuple[Callable[[Mapping[str, Any]], Optional[WalletResult]], ...] = (
    _parse_nested,
    _parse_flat,
)


def parse_wallet_result(result: Any) -> WalletResult:
    """Classify a wallet plugin result into one of the known shapes."""
    if not isinstance(result, Mapping):
        return Unrecognized()
    for parse in WALLET_SHAPES:
        shape = parse(result)
        if shape is not None:
            return shape
    return Unrecognized(keys=tuple(sorted(str(key) for key in result.keys())))


def extract_payment_token(result: Any) -> str:
    """Return the payment token carried by a wallet plugin result.

    Raises:
        TokenExtractionError: If the result matches no known shape.
    """
    shape = parse_wallet_result(result)
    if isinstance(shape, Unrecognized):
        logger.warning(f"Unrecognized wallet result shape (keys={list(shape.keys)})")
        raise TokenExtractionError(
            "Could not find a payment token in the wallet result "
            "(expected paymentMethodData.tokenizationData.token or token)"
        )
    logger.debug(f"Extracted {shape.provider} wallet token")
    return shape.token
