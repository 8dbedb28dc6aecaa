"""
SDR Insourcing vs. Outsourcing Calculator
"""
from __future__ import annotations
import logging
from datetime import datetime

import numpy as np
import plotly.graph_objects as go
import streamlit as st

from currency import (
    SUPPORTED_CURRENCIES, convert_fixed_costs, format_currency,
    format_percentage, get_multiplier, load_rates,
)
from engine import (
    apply_edit, calculate_costs, comparison_tables, default_fixed_costs,
    default_options, find_parity_salary, reset_inputs, run_sensitivity,
    validate_inputs,
)
from export import build_excel

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger("app")

st.set_page_config(
    page_title="Insourcing vs. Outsourcing Calculator",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ── CSS ──────────────────────────────────────────────────────────────────────
st.markdown("""
<style>
#MainMenu, footer { visibility: hidden; }
.block-container { padding-top: 1.5rem; padding-bottom: 1rem; }

/* KPI cards */
.kpi-card {
    background: #1A1D27;
    border: 1px solid #2D3148;
    border-radius: 10px;
    padding: 14px 18px;
    text-align: center;
    height: 100%;
}
.kpi-label { color: #8B8FA8; font-size: 11px; text-transform: uppercase; letter-spacing: 1px; margin-bottom: 4px; }
.kpi-value { color: #FAFAFA; font-size: 22px; font-weight: 700; line-height: 1.1; }
.kpi-sub   { color: #4F8BF9; font-size: 11px; margin-top: 3px; }

.info-box  { background:#1A2235; border-left:3px solid #4F8BF9; padding:8px 12px; border-radius:4px; font-size:13px; margin-bottom:6px; }

.sec-hdr {
    color: #8B8FA8; font-size: 10px; text-transform: uppercase;
    letter-spacing: 1.5px; margin: 6px 0 4px 0;
    border-bottom: 1px solid #2D3148; padding-bottom: 2px;
}
</style>
""", unsafe_allow_html=True)

PC  = ["#4F8BF9", "#52D68A", "#F0A843", "#E05252", "#A855F7", "#22D3EE"]
TPL = "plotly_dark"

# (key, label, step, format)
FIELDS = [
    ("yearly_salary",          "Yearly Salary per SDR",             1000.0, "%.0f"),
    ("avg_yearly_commissions", "Average Yearly Commissions",        1000.0, "%.0f"),
    ("payroll_tax_rate",       "Payroll Tax Rate (%)",              0.01,   "%.2f"),
    ("benefits_rate",          "Benefits Rate (% of Salary)",       0.1,    "%.1f"),
    ("manager_salary",         "Yearly Salary per SDR Manager",     1000.0, "%.0f"),
    ("employees_per_manager",  "SDRs per Manager",                  1.0,    "%.0f"),
    ("employees_to_hire",      "Number of SDRs Seeking to Hire",    1.0,    "%.0f"),
]


# ── Session state ─────────────────────────────────────────────────────────────
if "inputs"   not in st.session_state: st.session_state.inputs   = reset_inputs()
if "options"  not in st.session_state: st.session_state.options  = default_options()
if "currency" not in st.session_state: st.session_state.currency = "USD"
if "errors"   not in st.session_state: st.session_state.errors   = {}
if "results"  not in st.session_state: st.session_state.results  = None
if "run_ts"   not in st.session_state: st.session_state.run_ts   = None


# ── Helpers ───────────────────────────────────────────────────────────────────
@st.cache_data(ttl=3600, show_spinner=False)
def _rates():
    return load_rates()

def kpi(col, label, value, sub=None):
    sub_h = f'<div class="kpi-sub">{sub}</div>' if sub else ""
    col.markdown(
        f'<div class="kpi-card"><div class="kpi-label">{label}</div>'
        f'<div class="kpi-value">{value}</div>{sub_h}</div>',
        unsafe_allow_html=True
    )

def section(label):
    st.markdown(f'<div class="sec-hdr">{label}</div>', unsafe_allow_html=True)

def _multiplier():
    rates, _ = _rates()
    return get_multiplier(st.session_state.currency, rates)

def run_and_store():
    inputs = st.session_state.inputs
    errors = validate_inputs(inputs)
    st.session_state.errors = errors
    if errors:
        st.session_state.results = None
        return
    mult = _multiplier()
    fixed = convert_fixed_costs(default_fixed_costs(), mult)
    # Reference costs are converted once; the model then runs in the display currency
    b = calculate_costs(inputs, fixed, 1.0, st.session_state.options)
    st.session_state.results = {
        "breakdown": b,
        "tables":    comparison_tables(inputs, b),
        "fixed":     fixed,
        "currency":  st.session_state.currency,
        "inputs":    dict(inputs),
    }
    st.session_state.run_ts = datetime.now().strftime("%I:%M %p")

def _fmt_table(df, cur):
    styled = df.style.format({
        "In-House": lambda v: "" if v is None or (isinstance(v, float) and np.isnan(v)) else format_currency(v, cur),
        "Provider": lambda v: "" if v is None or (isinstance(v, float) and np.isnan(v)) else format_currency(v, cur),
    })
    st.dataframe(styled, use_container_width=True, hide_index=True)


# ════════════════════════════════════════════════════════════════════════════
# SIDEBAR — Currency, model options, reset
# ════════════════════════════════════════════════════════════════════════════
with st.sidebar:
    section("Display Currency")
    cur = st.selectbox(
        "Currency", SUPPORTED_CURRENCIES,
        index=SUPPORTED_CURRENCIES.index(st.session_state.currency),
        label_visibility="collapsed",
        help="Provider reference costs are converted into this currency. Your own inputs are taken as entered."
    )
    if cur != st.session_state.currency:
        st.session_state.currency = cur
        st.session_state.results  = None
    _, rate_source = _rates()
    if rate_source == "fallback":
        st.markdown(
            '<div class="info-box">Live exchange rates unavailable — using approximate built-in rates.</div>',
            unsafe_allow_html=True
        )

    st.divider()

    section("Model Options")
    o = dict(st.session_state.options)
    _mgr_opts = {"exact": "Exact share of one manager", "whole_managers": "Whole managers only"}
    o["manager_allocation"] = st.radio(
        "Manager Cost Allocation", list(_mgr_opts),
        index=list(_mgr_opts).index(o["manager_allocation"]),
        format_func=_mgr_opts.get,
        help="Whole managers: a partial team still needs a full manager, so "
             "ceil(hires ÷ span) salaries are spread across the hires."
    )
    _infra_opts = {"fixed": "Fixed monthly amount", "pct_payroll": "Percent of payroll"}
    o["infrastructure_mode"] = st.radio(
        "Infrastructure & Facilities", list(_infra_opts),
        index=list(_infra_opts).index(o["infrastructure_mode"]),
        format_func=_infra_opts.get,
    )
    if o["infrastructure_mode"] == "pct_payroll":
        _pct = st.slider(
            "Infrastructure (% of monthly salary + commissions)",
            min_value=0, max_value=30, value=int(round(o["infrastructure_pct_payroll"] * 100)),
            step=1, format="%d%%"
        )
        o["infrastructure_pct_payroll"] = _pct / 100.0
    o["include_legal_compliance"] = st.checkbox(
        "Include Legal and Compliance", value=bool(o["include_legal_compliance"])
    )
    if o != st.session_state.options:
        st.session_state.options = o
        st.session_state.results = None

    st.divider()

    if st.button("Reset Values", use_container_width=True):
        st.session_state.inputs  = reset_inputs()
        st.session_state.options = default_options()
        st.session_state.errors  = {}
        st.session_state.results = None
        for key, *_ in FIELDS:
            st.session_state.pop(f"in_{key}", None)
        st.rerun()


# ════════════════════════════════════════════════════════════════════════════
# INPUT FORM
# ════════════════════════════════════════════════════════════════════════════
st.title("Insourcing vs. Outsourcing Calculator")
st.caption(
    "Compare the cost of hiring Sales Development Representatives (SDRs) in-house "
    "against an outsourced SDR service. Enter your company-specific values for a "
    "personalized comparison."
)

with st.form("inputs"):
    section("Compare Costs")
    cols = st.columns(2)
    new_inputs = st.session_state.inputs
    errors = st.session_state.errors
    for i, (key, label, step, fmt) in enumerate(FIELDS):
        with cols[i % 2]:
            raw = st.number_input(
                label, value=float(new_inputs[key]), step=step, format=fmt, key=f"in_{key}"
            )
            new_inputs = apply_edit(new_inputs, key, raw)
            if errors.get(key):
                st.error(errors[key])
    btn_lbl = "Calculate Costs" + (f"  ·  {st.session_state.run_ts}" if st.session_state.run_ts else "")
    submitted = st.form_submit_button(btn_lbl, type="primary")

if submitted:
    st.session_state.inputs = new_inputs
    run_and_store()
    st.rerun()


# ════════════════════════════════════════════════════════════════════════════
# RESULTS
# ════════════════════════════════════════════════════════════════════════════
res = st.session_state.results
if res is None:
    st.markdown('<div class="info-box">Click <b>Calculate Costs</b> to see the comparison.</div>',
                unsafe_allow_html=True)
    st.stop()

b, cur, inputs = res["breakdown"], res["currency"], res["inputs"]
hire = int(inputs["employees_to_hire"])

section(f"Cost Comparison — {hire} SDRs, yearly")
k1, k2, k3, k4 = st.columns(4)
kpi(k1, "In-House", format_currency(b["total_yearly_in_house_cost_all"], cur),
    f"{format_currency(b['total_yearly_in_house_cost'], cur)} per SDR")
kpi(k2, "Outsourced", format_currency(b["yearly_provider_cost_all"], cur),
    f"{format_currency(b['yearly_provider_cost'], cur)} per SDR")
kpi(k3, "Savings", format_currency(b["yearly_savings_all"], cur),
    f"First year: {format_currency(b['first_year_savings_all'], cur)}")
kpi(k4, "Savings %", format_percentage(b["savings_percentage"]),
    "of in-house yearly cost")

_be = b["break_even_months"]
_co = b["crossover_months"]
st.caption(
    f"Break-even period: **{'N/A' if _be is None else f'{_be:.1f} months'}** · "
    f"In-house catches up with outsourcing after: **{'never' if _co is None else f'{_co:.1f} months'}**"
)

st.divider()

left, right = st.columns([3, 2])
with left:
    for title, df in res["tables"].items():
        section(title)
        _fmt_table(df, cur)

with right:
    section("Monthly Cost per SDR")
    parts = [
        ("Salary + Commissions", (inputs["yearly_salary"] + inputs["avg_yearly_commissions"]) / 12),
        ("Payroll Tax",          b["payroll_tax"] / 12),
        ("Benefits",             b["benefits_cost"] / 12),
        ("Management",           b["manager_cost_allocation"] / 12),
        ("Tools",                b["monthly_tools_cost"]),
        ("Infrastructure",       b["monthly_infrastructure_cost"]),
        ("Turnover",             b["monthly_turnover_cost"]),
        ("Legal",                b["monthly_legal_compliance_cost"]),
    ]
    fig = go.Figure()
    for (nm, val), c in zip(parts, PC * 2):
        fig.add_trace(go.Bar(x=["In-House"], y=[val], name=nm, marker_color=c))
    fig.add_trace(go.Bar(x=["Outsourced"], y=[b["monthly_provider_cost"]], name="Monthly Fee",
                         marker_color="#8B8FA8"))
    fig.update_layout(template=TPL, barmode="stack", height=380,
                      margin=dict(l=10, r=10, t=20, b=10),
                      legend=dict(orientation="h", y=-0.2))
    st.plotly_chart(fig, use_container_width=True)

    section("Salary Sensitivity")
    base_sal = float(inputs["yearly_salary"])
    sal_vals = [round(base_sal * f, -3) for f in (0.6, 0.7, 0.8, 0.9, 1.0, 1.1, 1.2, 1.3, 1.4)]
    fixed = res["fixed"]
    sens = run_sensitivity(inputs, fixed, "yearly_salary", sal_vals,
                           1.0, st.session_state.options)
    fig_s = go.Figure(go.Scatter(x=sens["value"], y=sens["yearly_savings_all"], mode="lines+markers",
                                 line=dict(color=PC[0], width=2), marker=dict(size=7)))
    fig_s.add_hline(y=0, line_dash="dot", line_color="#444", line_width=1)
    fig_s.update_layout(template=TPL, height=260, margin=dict(l=10, r=10, t=20, b=10),
                        xaxis_title="Yearly Salary per SDR", yaxis_title=f"Yearly Savings, {hire} SDRs")
    st.plotly_chart(fig_s, use_container_width=True)

    parity = find_parity_salary(inputs, fixed, 1.0, st.session_state.options)
    if parity is None:
        st.caption("In-house stays cheaper than outsourcing at any salary up to 1,000,000.")
    elif parity == 0:
        st.caption("Outsourcing is the cheaper option at any salary, even before salary is counted.")
    else:
        st.caption(f"Outsourcing becomes the cheaper option once SDR salary reaches **{format_currency(parity, cur)}**.")

st.divider()
section("Export to Excel")
xlsx = build_excel(inputs, res["fixed"], b, res["tables"], cur,
                   sensitivity_tables={"Sens_Salary": sens})
st.download_button(
    "Download Excel", data=xlsx,
    file_name="sdr_cost_comparison.xlsx",
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
)

st.markdown(
    '<div class="info-box">Outsourcing to experienced professionals often yields higher pipeline '
    'throughput than starting an in-house team, scales up and down with seasonal demand, and avoids '
    'the revenue lost while an initial team trains or while seats sit empty after turnover.</div>',
    unsafe_allow_html=True
)
