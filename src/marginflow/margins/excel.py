"""Excel workbook with predictions, contrasts, and coefficients."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional
import pandas as pd

DECIMAL_COLUMNS = {
    "predicted",
    "estimate",
    "std_error",
    "statistic",
    "conf_low",
    "conf_high",
}


def column_widths(df: pd.DataFrame, min_width: int = 10, max_width: int = 50) -> Dict[str, int]:
    """Character width per column, from the longest of header and cell text."""
    widths = {}
    for col in df.columns:
        longest = df[col].astype(str).str.len().max() if len(df) else 0
        widths[col] = int(min(max_width, max(min_width, len(str(col)) + 2, longest + 2)))
    return widths


def create_formats(workbook: Any) -> Dict[str, Any]:
    """xlsxwriter number formats and the highlight used for small p-values."""
    return {
        "pvalue": workbook.add_format({"num_format": "0.0000"}),
        "decimal3": workbook.add_format({"num_format": "0.000"}),
        "sig_highlight": workbook.add_format({"bg_color": "#FFEB9C", "font_color": "#9C5700"}),
    }


def write_sheet_with_formatting(
    writer: pd.ExcelWriter,
    df: Optional[pd.DataFrame],
    sheet_name: str,
    formats: Dict[str, Any],
    alpha: Optional[float] = None,
):
    """Write one table as a sheet with a frozen, filterable header.

    Estimates get three decimals, p-values four; with ``alpha`` set, p-value
    cells below it are highlighted. Empty or missing tables are skipped.
    """
    if df is None or df.empty:
        return

    df.to_excel(writer, sheet_name=sheet_name, index=False)
    ws = writer.sheets[sheet_name]
    ws.freeze_panes(1, 0)
    ws.autofilter(0, 0, len(df), len(df.columns) - 1)

    widths = column_widths(df)
    for col_idx, col_name in enumerate(df.columns):
        if col_name == "p_value":
            ws.set_column(col_idx, col_idx, max(widths[col_name], 12), formats["pvalue"])
            if alpha is not None:
                ws.conditional_format(
                    1,
                    col_idx,
                    len(df),
                    col_idx,
                    {
                        "type": "cell",
                        "criteria": "<",
                        "value": alpha,
                        "format": formats["sig_highlight"],
                    },
                )
        elif col_name in DECIMAL_COLUMNS:
            ws.set_column(col_idx, col_idx, max(widths[col_name], 12), formats["decimal3"])
        else:
            ws.set_column(col_idx, col_idx, widths[col_name])


def write_margins_workbook(
    outdir: Path,
    run_manifest: pd.DataFrame,
    coefficients: pd.DataFrame,
    predictions: pd.DataFrame,
    contrasts: Optional[pd.DataFrame],
    alpha: float = 0.05,
) -> Path:
    """Write the analysis workbook.

    Sheets: Run_Manifest, Coefficients, Predictions, Contrasts (if any).

    Returns:
        Path to created workbook
    """
    outdir.mkdir(parents=True, exist_ok=True)
    out_xlsx = outdir / "margins_results.xlsx"

    with pd.ExcelWriter(out_xlsx, engine="xlsxwriter") as writer:
        formats = create_formats(writer.book)
        write_sheet_with_formatting(writer, run_manifest, "Run_Manifest", formats)
        write_sheet_with_formatting(writer, coefficients, "Coefficients", formats, alpha=alpha)
        write_sheet_with_formatting(writer, predictions, "Predictions", formats)
        write_sheet_with_formatting(writer, contrasts, "Contrasts", formats, alpha=alpha)

    return out_xlsx
