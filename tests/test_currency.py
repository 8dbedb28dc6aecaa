"""Tests for exchange-rate loading and reference-cost conversion."""

from unittest.mock import MagicMock, patch

import pytest
import requests

import currency
from currency import (
    FALLBACK_RATES, RateUnavailableError, convert_fixed_costs, fetch_rates,
    format_currency, format_percentage, get_multiplier, load_rates,
)
from engine import calculate_costs, default_fixed_costs, default_inputs


def _response(payload=None, status_error=None, json_error=None):
    resp = MagicMock()
    if status_error is not None:
        resp.raise_for_status.side_effect = status_error
    if json_error is not None:
        resp.json.side_effect = json_error
    else:
        resp.json.return_value = payload
    return resp


def test_fetch_rates_success():
    payload = {"result": "success", "rates": {"USD": 1, "eur": 0.9, "GBP": 0.8, "BAD": "x", "NEG": -1}}
    with patch.object(currency.requests, "get", return_value=_response(payload)) as mock_get:
        rates = fetch_rates("https://rates.example/latest", timeout=5)

    mock_get.assert_called_once_with("https://rates.example/latest", timeout=5)
    assert rates == {"USD": 1.0, "EUR": 0.9, "GBP": 0.8}


@pytest.mark.parametrize("resp_kwargs", [
    {"status_error": requests.HTTPError("503 Service Unavailable")},
    {"json_error": ValueError("not json")},
    {"payload": {"result": "error"}},
    {"payload": {"rates": {}}},
    {"payload": {"rates": {"EUR": "n/a"}}},
    {"payload": ["not", "a", "dict"]},
])
def test_fetch_rates_bad_responses(resp_kwargs):
    with patch.object(currency.requests, "get", return_value=_response(**resp_kwargs)):
        with pytest.raises(RateUnavailableError):
            fetch_rates()


def test_fetch_rates_network_error():
    with patch.object(currency.requests, "get", side_effect=requests.ConnectionError("down")):
        with pytest.raises(RateUnavailableError):
            fetch_rates()


def test_load_rates_live():
    with patch.object(currency, "fetch_rates", return_value={"USD": 1.0, "EUR": 0.95}):
        rates, source = load_rates()
    assert source == "live"
    assert rates["EUR"] == 0.95


def test_load_rates_falls_back(caplog):
    """A failed fetch uses the built-in table and logs a warning."""
    with patch.object(currency.requests, "get", side_effect=requests.Timeout("slow")):
        with caplog.at_level("WARNING", logger="currency"):
            rates, source = load_rates()

    assert source == "fallback"
    assert rates == FALLBACK_RATES
    assert rates is not FALLBACK_RATES
    assert "built-in" in caplog.text


def test_cost_breakdown_still_produced_after_fetch_failure():
    with patch.object(currency.requests, "get", side_effect=requests.ConnectionError("down")):
        rates, _ = load_rates()

    mult = get_multiplier("EUR", rates)
    b = calculate_costs(default_inputs(), default_fixed_costs(), mult)

    assert mult == FALLBACK_RATES["EUR"]
    assert b["monthly_provider_cost"] == pytest.approx(11500 * FALLBACK_RATES["EUR"])
    assert b["total_yearly_in_house_cost"] > 0


def test_get_multiplier():
    rates = {"USD": 1.0, "EUR": 0.95}
    assert get_multiplier("eur", rates) == 0.95
    # Supported but missing from the live source
    assert get_multiplier("GBP", rates) == FALLBACK_RATES["GBP"]
    with pytest.raises(ValueError):
        get_multiplier("XYZ", rates)


def test_convert_fixed_costs_leaves_rates_alone():
    fixed = default_fixed_costs()
    converted = convert_fixed_costs(fixed, 2.0)

    assert converted["monthly_fee"] == 23000.0
    assert converted["recruitment_cost"] == 14400.0
    assert converted["monthly_turnover_rate"] == fixed["monthly_turnover_rate"]
    assert fixed["monthly_fee"] == 11500.0


def test_converted_costs_match_multiplier_argument():
    """Pre-converting reference costs and passing a multiplier agree."""
    via_mult = calculate_costs(default_inputs(), default_fixed_costs(), 1.36)
    via_conv = calculate_costs(default_inputs(), convert_fixed_costs(default_fixed_costs(), 1.36))
    assert via_mult["yearly_savings"] == pytest.approx(via_conv["yearly_savings"])


def test_formatting():
    assert format_currency(11500) == "$11,500"
    assert format_currency(-1234.6, "EUR") == "-€1,235"
    assert format_currency(None) == "—"
    assert format_currency(float("nan")) == "—"
    assert format_percentage(9.8027) == "9.8%"
    assert format_percentage(None) == "N/A"
