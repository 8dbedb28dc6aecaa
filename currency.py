"""
currency.py — Exchange rates for rescaling the provider's reference costs
"""
import logging
import os
from math import isfinite

import requests

from engine import MONETARY_FIXED_FIELDS


log = logging.getLogger(__name__)

RATES_URL = os.environ.get("SDR_CALC_RATES_URL", "https://open.er-api.com/v6/latest/USD")
RATES_TIMEOUT = float(os.environ.get("SDR_CALC_RATES_TIMEOUT", "10"))

# Approximate USD multipliers, used whenever the live source can't be reached
FALLBACK_RATES = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "CAD": 1.36,
    "AUD": 1.52,
    "INR": 83.1,
    "JPY": 149.5,
}

SUPPORTED_CURRENCIES = list(FALLBACK_RATES)

_SYMBOLS = {
    "USD": "$", "EUR": "€", "GBP": "£", "CAD": "CA$",
    "AUD": "A$", "INR": "₹", "JPY": "¥",
}


class RateUnavailableError(RuntimeError):
    """The rate source could not supply usable rates."""


def fetch_rates(url: str = RATES_URL, timeout: float = RATES_TIMEOUT) -> dict:
    """
    One GET against a USD-based rate source.

    Expects a JSON body with a ``rates`` mapping of currency code to multiplier.
    Raises RateUnavailableError on network failure, bad status or bad payload.
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        raise RateUnavailableError(f"Rate source unavailable: {e}") from e

    rates = data.get("rates") if isinstance(data, dict) else None
    if not isinstance(rates, dict) or not rates:
        raise RateUnavailableError("Rate source returned no rates")

    clean = {}
    for code, rate in rates.items():
        if isinstance(rate, (int, float)) and not isinstance(rate, bool) and isfinite(rate) and rate > 0:
            clean[str(code).upper()] = float(rate)
    if not clean:
        raise RateUnavailableError("Rate source returned no usable rates")
    return clean


def load_rates(url: str | None = None) -> tuple:
    """
    Fetch live rates, falling back to FALLBACK_RATES.

    Returns (rates, source) where source is "live" or "fallback".
    """
    try:
        rates = fetch_rates(url or RATES_URL)
    except RateUnavailableError as e:
        log.warning("%s; using built-in approximate rates", e)
        return dict(FALLBACK_RATES), "fallback"
    log.info("Loaded %d exchange rates", len(rates))
    return rates, "live"


def get_multiplier(currency: str, rates: dict) -> float:
    code = currency.upper()
    if code not in FALLBACK_RATES:
        raise ValueError(f"Unsupported currency: {currency}")
    if code in rates:
        return float(rates[code])
    log.warning("No rate for %s from source; using built-in rate", code)
    return FALLBACK_RATES[code]


def convert_fixed_costs(fixed_costs: dict, multiplier: float) -> dict:
    """Rescale the monetary reference costs. Rates (turnover %) are left alone."""
    converted = dict(fixed_costs)
    for k in MONETARY_FIXED_FIELDS:
        if k in converted:
            converted[k] = float(converted[k]) * multiplier
    return converted


def format_currency(v, currency: str = "USD") -> str:
    if v is None or (isinstance(v, float) and not isfinite(v)):
        return "—"
    sym = _SYMBOLS.get(currency.upper(), currency.upper() + " ")
    sign = "-" if v < 0 else ""
    return f"{sign}{sym}{abs(v):,.0f}"


def format_percentage(v) -> str:
    if v is None or (isinstance(v, float) and not isfinite(v)):
        return "N/A"
    return f"{v:.1f}%"
