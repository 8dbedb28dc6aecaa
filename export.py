"""
export.py — Excel export for the SDR Insourcing vs. Outsourcing Calculator
"""
import io

import pandas as pd
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter


_HEADER_FILL  = PatternFill("solid", fgColor="1F4E79")
_HEADER_FONT  = Font(color="FFFFFF", bold=True)
_ALT_FILL     = PatternFill("solid", fgColor="D9E1F2")
_MONEY_FORMAT = "#,##0"


def _fmt_sheet(ws, col_widths=None, money_cols=()):
    """Apply header formatting, auto-width and number formats to a worksheet."""
    for cell in ws[1]:
        cell.font      = _HEADER_FONT
        cell.fill      = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center")

    if col_widths:
        for i, w in enumerate(col_widths, 1):
            ws.column_dimensions[get_column_letter(i)].width = w
    else:
        for col in ws.columns:
            max_len = max(
                (len(str(cell.value)) if cell.value is not None else 0)
                for cell in col
            )
            ws.column_dimensions[col[0].column_letter].width = min(max_len + 4, 40)

    for idx in money_cols:
        for cell in ws[get_column_letter(idx)][1:]:
            if isinstance(cell.value, (int, float)):
                cell.number_format = _MONEY_FORMAT

    # Alternate row shading
    for i, row in enumerate(ws.iter_rows(min_row=2), start=2):
        if i % 2 == 0:
            for cell in row:
                if cell.fill.fill_type is None or cell.fill.fill_type == "none":
                    cell.fill = _ALT_FILL


def _kv_frame(d: dict, key_col: str, val_col: str) -> pd.DataFrame:
    return pd.DataFrame([{key_col: k, val_col: v} for k, v in d.items()])


def build_excel(inputs: dict, fixed_costs: dict, breakdown: dict,
                tables: dict, currency: str = "USD",
                sensitivity_tables: dict | None = None) -> bytes:
    """
    Build an Excel workbook and return as bytes.

    Parameters
    ----------
    inputs             : Input Record used for the run
    fixed_costs        : reference costs, already in `currency`
    breakdown          : output from calculate_costs
    tables             : output from comparison_tables {title: pd.DataFrame}
    currency           : display currency code, written to the Summary sheet
    sensitivity_tables : dict {sheet_name: pd.DataFrame}
    """
    output = io.BytesIO()

    with pd.ExcelWriter(output, engine="openpyxl") as writer:

        # ── Summary ──────────────────────────────────────────────────
        pct = breakdown.get("savings_percentage")
        summary = pd.DataFrame([
            {"Metric": "Currency",                        "Value": currency},
            {"Metric": "Employees to Hire",               "Value": inputs["employees_to_hire"]},
            {"Metric": "Yearly In-House Cost (all)",      "Value": breakdown["total_yearly_in_house_cost_all"]},
            {"Metric": "Yearly Provider Cost (all)",      "Value": breakdown["yearly_provider_cost_all"]},
            {"Metric": "Yearly Savings (all)",            "Value": breakdown["yearly_savings_all"]},
            {"Metric": "Savings Percentage",              "Value": "N/A" if pct is None else round(pct, 2)},
        ])
        summary.to_excel(writer, sheet_name="Summary", index=False)
        _fmt_sheet(writer.sheets["Summary"])

        # ── Inputs ───────────────────────────────────────────────────
        _kv_frame(inputs, "Input", "Value").to_excel(writer, sheet_name="Inputs", index=False)
        _fmt_sheet(writer.sheets["Inputs"])

        _kv_frame(fixed_costs, "Reference Cost", "Value").to_excel(
            writer, sheet_name="Reference Costs", index=False)
        _fmt_sheet(writer.sheets["Reference Costs"], money_cols=(2,))

        # ── Breakdown ────────────────────────────────────────────────
        bd = {k: ("N/A" if v is None else v) for k, v in breakdown.items()}
        _kv_frame(bd, "Figure", "Value").to_excel(writer, sheet_name="Breakdown", index=False)
        _fmt_sheet(writer.sheets["Breakdown"], money_cols=(2,))

        # ── Comparison tables, stacked on one sheet ──────────────────
        row = 0
        for title, df in tables.items():
            pd.DataFrame({title: []}).to_excel(writer, sheet_name="Comparison",
                                               index=False, startrow=row)
            df.to_excel(writer, sheet_name="Comparison", index=False, startrow=row + 1)
            row += len(df) + 3
        ws = writer.sheets["Comparison"]
        for cell in ws["A"]:
            if cell.value in tables:
                cell.font = Font(bold=True)
        ws.column_dimensions["A"].width = 40
        for letter in ("B", "C"):
            ws.column_dimensions[letter].width = 16
            for cell in ws[letter]:
                if isinstance(cell.value, (int, float)):
                    cell.number_format = _MONEY_FORMAT

        # ── Sensitivity tables ───────────────────────────────────────
        if sensitivity_tables:
            for sheet_name, sdf in sensitivity_tables.items():
                safe = sheet_name[:31]
                sdf.to_excel(writer, sheet_name=safe, index=False)
                _fmt_sheet(writer.sheets[safe])

    output.seek(0)
    return output.read()
