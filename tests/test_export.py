"""Tests for the Excel export."""

import io

import pytest
from openpyxl import load_workbook

from currency import convert_fixed_costs
from engine import (
    calculate_costs, comparison_tables, default_fixed_costs, default_inputs,
    run_sensitivity,
)
from export import build_excel


def _workbook(**kwargs):
    inputs = default_inputs()
    fixed = default_fixed_costs()
    b = calculate_costs(inputs, fixed)
    tables = comparison_tables(inputs, b)
    data = build_excel(inputs, fixed, b, tables, **kwargs)
    return load_workbook(io.BytesIO(data))


def test_sheets_present():
    wb = _workbook()
    assert wb.sheetnames == ["Summary", "Inputs", "Reference Costs", "Breakdown", "Comparison"]


def test_summary_values():
    ws = _workbook(currency="EUR")["Summary"]
    rows = {r[0]: r[1] for r in ws.iter_rows(min_row=2, values_only=True)}

    assert rows["Currency"] == "EUR"
    assert rows["Employees to Hire"] == 7
    assert rows["Yearly Provider Cost (all)"] == 966000
    assert rows["Savings Percentage"] == 9.8


def test_breakdown_marks_missing_values():
    """Figures that are not applicable are written as N/A."""
    ws = _workbook()["Breakdown"]
    rows = {r[0]: r[1] for r in ws.iter_rows(min_row=2, values_only=True)}

    assert rows["crossover_months"] == "N/A"
    assert rows["payroll_tax"] == pytest.approx(7726.5)


def test_comparison_sheet_has_every_table():
    inputs = default_inputs()
    b = calculate_costs(inputs)
    tables = comparison_tables(inputs, b)
    wb = load_workbook(io.BytesIO(build_excel(inputs, default_fixed_costs(), b, tables)))

    first_col = [c.value for c in wb["Comparison"]["A"]]
    for title in tables:
        assert title in first_col


def test_sensitivity_sheets():
    inputs = default_inputs()
    fixed = convert_fixed_costs(default_fixed_costs(), 0.79)
    b = calculate_costs(inputs, default_fixed_costs(), 0.79)
    sens = run_sensitivity(inputs, default_fixed_costs(), "yearly_salary", [60000, 70000], 0.79)

    data = build_excel(inputs, fixed, b, comparison_tables(inputs, b), "GBP",
                       sensitivity_tables={"Sens_Salary": sens})
    wb = load_workbook(io.BytesIO(data))

    assert "Sens_Salary" in wb.sheetnames
    assert wb["Sens_Salary"]["A1"].value == "value"
    assert wb["Sens_Salary"].max_row == 3
