"""
engine.py — Cost engine for the SDR Insourcing vs. Outsourcing Calculator
"""
import logging
from math import ceil, isfinite

import pandas as pd


log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default inputs
# ---------------------------------------------------------------------------

def default_inputs() -> dict:
    """Company-specific values. National averages; conservative end of any range."""
    return {
        "yearly_salary":          65_000.0,
        "avg_yearly_commissions": 36_000.0,
        "payroll_tax_rate":       7.65,      # % of salary + commissions
        "manager_salary":         137_000.0,
        "employees_per_manager":  7,
        "employees_to_hire":      7,
        "benefits_rate":          20.0,      # % of salary
    }


def default_fixed_costs() -> dict:
    """Provider-side reference costs, USD per employee."""
    return {
        "monthly_fee":                 11_500.0,
        "monthly_tools_cost":          225.0,    # licenses and sales tools
        "monthly_infrastructure_cost": 350.0,    # facilities, hardware
        "recruitment_cost":            7_200.0,  # one-time per hire
        "onboarding_cost":             8_800.0,  # one-time per hire, training included
        "monthly_turnover_rate":       30 / 12,  # % per month; 30%/yr is the bottom of the national average
        "legal_compliance_cost":       0.0,      # monthly
    }


def default_options() -> dict:
    return {
        "manager_allocation":          "exact",   # "exact" | "whole_managers"
        "infrastructure_mode":         "fixed",   # "fixed" | "pct_payroll"
        "infrastructure_pct_payroll":  0.10,
        "include_legal_compliance":    True,
    }


INTEGER_FIELDS = ("employees_per_manager", "employees_to_hire")

# Fixed-cost fields expressed in money; the turnover rate is a percentage.
MONETARY_FIXED_FIELDS = (
    "monthly_fee",
    "monthly_tools_cost",
    "monthly_infrastructure_cost",
    "recruitment_cost",
    "onboarding_cost",
    "legal_compliance_cost",
)


# ---------------------------------------------------------------------------
# Form transitions
# ---------------------------------------------------------------------------

def coerce_number(raw) -> float:
    """Turn user text into a number. Empty or non-numeric input becomes 0."""
    if raw is None or isinstance(raw, bool):
        return 0.0
    try:
        value = float(str(raw).strip().replace(",", ""))
    except ValueError:
        return 0.0
    return value if isfinite(value) else 0.0


def apply_edit(inputs: dict, field: str, raw) -> dict:
    """Return a copy of `inputs` with `field` replaced by the coerced value."""
    if field not in inputs:
        raise KeyError(f"Unknown input field: {field}")
    updated = dict(inputs)
    updated[field] = coerce_number(raw)
    return updated


def reset_inputs() -> dict:
    return default_inputs()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_inputs(inputs: dict) -> dict:
    """
    Check every field against its own constraint.

    Returns {field: message} for each failing field, {} when all pass.
    A field with a specific rule reports that rule's message instead of the
    generic negative-value one, so each field carries at most one error.
    NaN and infinity are rejected before any range check.
    """
    errors = {}
    finite = {}

    for key, value in inputs.items():
        if not isfinite(value):
            errors[key] = "Must be a finite number"
        else:
            finite[key] = value

    for key, value in finite.items():
        if value < 0:
            errors[key] = "Value cannot be negative"

    for key in INTEGER_FIELDS:
        if key not in finite:
            continue
        value = finite[key]
        if value > 0 and value != int(value):
            errors[key] = "Must be a whole number"
        if key == "employees_per_manager" and value <= 0:
            errors[key] = "Must have at least 1 employee per manager"
        if key == "employees_to_hire" and value <= 0:
            errors[key] = "Must be hiring at least 1 employee"

    if "payroll_tax_rate" in finite:
        rate = finite["payroll_tax_rate"]
        if rate <= 0 or rate > 100:
            errors["payroll_tax_rate"] = "Tax rate must be between 0 and 100 percent"

    if "benefits_rate" in finite:
        rate = finite["benefits_rate"]
        if rate < 0 or rate > 100:
            errors["benefits_rate"] = "Benefits rate must be between 0 and 100 percent"

    return errors


# ---------------------------------------------------------------------------
# Main engine
# ---------------------------------------------------------------------------

def calculate_costs(inputs: dict, fixed_costs: dict | None = None,
                    multiplier: float = 1.0, options: dict | None = None) -> dict:
    """
    Compare in-house hiring against the provider's monthly fee.

    Figures are per employee unless the key ends in ``_all`` (multiplied by
    ``employees_to_hire``). Monetary fixed costs are scaled by `multiplier`;
    user inputs are taken as already being in the display currency.

    Raises
    ------
    ValueError if `inputs` fails validation. Callers validate first.
    """
    errors = validate_inputs(inputs)
    if errors:
        raise ValueError(f"Invalid inputs: {', '.join(sorted(errors))}")

    f = dict(default_fixed_costs(), **(fixed_costs or {}))
    o = dict(default_options(), **(options or {}))
    mult = float(multiplier)

    # --- Unpack -------------------------------------------------------
    salary      = float(inputs["yearly_salary"])
    commissions = float(inputs["avg_yearly_commissions"])
    tax_rate    = float(inputs["payroll_tax_rate"])
    mgr_salary  = float(inputs["manager_salary"])
    span        = int(inputs["employees_per_manager"])
    hire        = int(inputs["employees_to_hire"])
    ben_rate    = float(inputs["benefits_rate"])

    fee         = float(f["monthly_fee"])                 * mult
    tools       = float(f["monthly_tools_cost"])          * mult
    infra_fixed = float(f["monthly_infrastructure_cost"]) * mult
    recruit     = float(f["recruitment_cost"])            * mult
    onboard     = float(f["onboarding_cost"])             * mult
    legal       = float(f["legal_compliance_cost"])       * mult
    turnover    = float(f["monthly_turnover_rate"])

    # --- Direct (yearly) ----------------------------------------------
    payroll_tax   = (salary + commissions) * (tax_rate / 100)
    benefits_cost = salary * (ben_rate / 100)

    # Management cost spread across the team each manager supervises
    managers_needed = ceil(hire / span)
    if o["manager_allocation"] == "whole_managers":
        mgr_alloc = managers_needed * mgr_salary / hire
    else:
        mgr_alloc = mgr_salary / span

    yearly_direct  = salary + commissions + payroll_tax + benefits_cost + mgr_alloc
    monthly_direct = yearly_direct / 12

    # --- Indirect (monthly) -------------------------------------------
    if o["infrastructure_mode"] == "pct_payroll":
        infra = (salary + commissions) / 12 * float(o["infrastructure_pct_payroll"])
    else:
        infra = infra_fixed
    if not o["include_legal_compliance"]:
        legal = 0.0

    # Turnover amortizes the one-time hiring costs into a recurring cost
    startup           = recruit + onboard
    monthly_turnover  = startup * (turnover / 100)
    monthly_overhead  = tools + infra + monthly_turnover + legal

    total_monthly = monthly_direct + monthly_overhead
    total_yearly  = total_monthly * 12

    # --- Provider -----------------------------------------------------
    provider_monthly = fee
    provider_yearly  = fee * 12

    # --- Savings ------------------------------------------------------
    monthly_savings    = total_monthly - provider_monthly
    yearly_savings     = total_yearly - provider_yearly
    first_year_in_house = total_yearly + startup
    first_year_savings = first_year_in_house - provider_yearly

    savings_pct = yearly_savings / total_yearly * 100 if total_yearly != 0 else None
    break_even  = (total_yearly - startup) / total_monthly if total_monthly != 0 else None

    # Month at which cumulative in-house spend (startup included) meets the
    # provider's cumulative fees; only reachable when the provider costs more per month.
    monthly_gap = provider_monthly - total_monthly
    crossover   = startup / monthly_gap if monthly_gap > 0 else None

    if savings_pct is None:
        log.info("In-house cost baseline is zero; savings percentage not applicable")

    return {
        # Per employee
        "payroll_tax":                   payroll_tax,
        "benefits_cost":                 benefits_cost,
        "manager_cost_allocation":       mgr_alloc,
        "managers_needed":               managers_needed,
        "yearly_direct_cost":            yearly_direct,
        "monthly_direct_cost":           monthly_direct,
        "monthly_tools_cost":            tools,
        "monthly_infrastructure_cost":   infra,
        "monthly_recruitment_turnover_cost": recruit * (turnover / 100),
        "monthly_onboarding_turnover_cost":  onboard * (turnover / 100),
        "monthly_turnover_cost":         monthly_turnover,
        "monthly_legal_compliance_cost": legal,
        "monthly_overhead_cost":         monthly_overhead,
        "total_monthly_in_house_cost":   total_monthly,
        "total_yearly_in_house_cost":    total_yearly,
        "recruitment_cost":              recruit,
        "onboarding_cost":               onboard,
        "one_time_startup_cost":         startup,
        "first_year_in_house_cost":      first_year_in_house,
        "monthly_provider_cost":         provider_monthly,
        "yearly_provider_cost":          provider_yearly,
        "monthly_savings":               monthly_savings,
        "yearly_savings":                yearly_savings,
        "first_year_savings":            first_year_savings,
        "savings_percentage":            savings_pct,
        "break_even_months":             break_even,
        "crossover_months":              crossover,
        # All employees
        "total_monthly_in_house_cost_all": total_monthly * hire,
        "total_yearly_in_house_cost_all":  total_yearly * hire,
        "monthly_provider_cost_all":       provider_monthly * hire,
        "yearly_provider_cost_all":        provider_yearly * hire,
        "monthly_savings_all":             monthly_savings * hire,
        "yearly_savings_all":              yearly_savings * hire,
        "first_year_savings_all":          first_year_savings * hire,
        "currency_multiplier":             mult,
    }




# ---------------------------------------------------------------------------
# Comparison tables
# ---------------------------------------------------------------------------

def comparison_tables(inputs: dict, breakdown: dict) -> dict:
    """
    Lay the breakdown out as the In-House vs. Provider tables shown on the page.

    Returns {title: pd.DataFrame} with columns Item / In-House / Provider.
    Provider cells are None where the provider has no matching line item.
    """
    b    = breakdown
    hire = int(inputs["employees_to_hire"])
    fee  = b["monthly_provider_cost"]

    salary_mo = float(inputs["yearly_salary"]) / 12
    comm_mo   = float(inputs["avg_yearly_commissions"]) / 12
    tax_mo    = b["payroll_tax"] / 12
    ben_mo    = b["benefits_cost"] / 12
    mgmt_mo   = b["manager_cost_allocation"] / 12

    direct_total   = salary_mo + comm_mo + tax_mo + ben_mo + b["monthly_tools_cost"]
    indirect_total = (mgmt_mo + b["monthly_infrastructure_cost"]
                      + b["monthly_turnover_cost"] + b["monthly_legal_compliance_cost"])

    def _frame(rows):
        return pd.DataFrame(rows, columns=["Item", "In-House", "Provider"])

    return {
        "Direct Monthly Costs per Employee": _frame([
            ("Monthly Fee",        None,                     fee),
            ("Salary",             salary_mo,                None),
            ("Commissions",        comm_mo,                  None),
            ("Payroll Tax",        tax_mo,                   None),
            ("Benefits",           ben_mo,                   None),
            ("Tools and Licenses", b["monthly_tools_cost"],  None),
            ("Total Direct Cost",  direct_total,             fee),
        ]),
        "Indirect Monthly Costs per Employee": _frame([
            ("Management",           mgmt_mo,                               None),
            ("Infrastructure",       b["monthly_infrastructure_cost"],      None),
            ("Recruiting",           b["monthly_recruitment_turnover_cost"], None),
            ("Onboarding",           b["monthly_onboarding_turnover_cost"],  None),
            ("Legal and Compliance", b["monthly_legal_compliance_cost"],    None),
            ("Total Indirect Cost",  indirect_total,                        0.0),
        ]),
        "One-Time Startup Costs per Employee": _frame([
            ("Recruiting",         b["recruitment_cost"],       None),
            ("Onboarding",         b["onboarding_cost"],        None),
            ("Total Startup Cost", b["one_time_startup_cost"],  0.0),
        ]),
        "First Year Costs per Employee": _frame([
            ("Total Monthly Cost", b["total_monthly_in_house_cost"], fee),
            ("Total Yearly Cost",  b["total_yearly_in_house_cost"],  b["yearly_provider_cost"]),
            ("First Year Cost",    b["first_year_in_house_cost"],    b["yearly_provider_cost"]),
        ]),
        "Savings": _frame([
            ("Yearly Savings per Employee",               b["yearly_savings"],         None),
            ("First Year Savings per Employee",           b["first_year_savings"],     None),
            (f"Yearly Savings for {hire} Employees",      b["yearly_savings_all"],     None),
            (f"First Year Savings for {hire} Employees",  b["first_year_savings_all"], None),
        ]),
    }


# ---------------------------------------------------------------------------
# Sensitivity helper
# ---------------------------------------------------------------------------

def run_sensitivity(inputs: dict, fixed_costs: dict, param: str, values: list,
                    multiplier: float = 1.0, options: dict | None = None) -> pd.DataFrame:
    """
    Run the cost model once per value in `values` for the given input `param`.
    Returns a DataFrame with one row per value and summary metrics.
    Values that fail validation produce a row of NaN metrics.
    """
    rows = []
    for v in values:
        a = apply_edit(inputs, param, v)
        if validate_inputs(a):
            log.debug("Sensitivity value %r for %s fails validation", v, param)
            in_house = provider = savings = savings_all = pct = float("nan")
        else:
            b = calculate_costs(a, fixed_costs, multiplier, options)
            in_house    = b["total_yearly_in_house_cost"]
            provider    = b["yearly_provider_cost"]
            savings     = b["yearly_savings"]
            savings_all = b["yearly_savings_all"]
            pct         = b["savings_percentage"] if b["savings_percentage"] is not None else float("nan")

        rows.append({
            "value":              v,
            "yearly_in_house":    in_house,
            "yearly_provider":    provider,
            "yearly_savings":     savings,
            "yearly_savings_all": savings_all,
            "savings_pct":        pct,
        })
    return pd.DataFrame(rows)


def find_parity_salary(inputs: dict, fixed_costs: dict, multiplier: float = 1.0,
                       options: dict | None = None,
                       lo: int = 0, hi: int = 1_000_000) -> int | None:
    """
    Binary search: lowest whole yearly salary at which in-house costs at least
    as much as the provider over a year (yearly savings >= 0).

    Returns None when even `hi` leaves in-house cheaper.
    """
    def is_costlier(salary):
        a = apply_edit(inputs, "yearly_salary", salary)
        return calculate_costs(a, fixed_costs, multiplier, options)["yearly_savings"] >= 0

    if not is_costlier(hi):
        return None
    if is_costlier(lo):
        return lo

    while lo < hi - 1:
        mid = (lo + hi) // 2
        if is_costlier(mid):
            hi = mid
        else:
            lo = mid
    return hi
