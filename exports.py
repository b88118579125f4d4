import csv
import io
from datetime import datetime, timezone

from models import StatsReport


def _stat_rows(report: StatsReport) -> list[tuple[str, object]]:
    s = report.stats
    return [
        ("Total Transactions", s.total_transactions),
        ("Unique Days Active", s.unique_days_active),
        ("Longest Streak (Days)", s.longest_streak),
        ("Current Streak (Days)", s.current_streak),
        ("Activity Period (Days)", s.activity_period),
        ("Token Swaps", s.token_swaps),
        ("Bridge Transactions", s.bridge_transactions),
        ("DeFi Transactions", s.defi_transactions),
        ("ENS Interactions", s.ens_interactions),
        ("Contracts Deployed", s.contracts_deployed),
        ("Internal Transactions", s.internal_transactions),
        ("Total Gas Paid (ETH)", s.total_gas_paid),
        ("First Active Day", str(s.first_active_day or "N/A")),
        ("Last Active Day", str(s.last_active_day or "N/A")),
    ]


def _generated_at() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def to_csv(report: StatsReport) -> bytes:
    """Export a stats report to CSV."""
    out = io.StringIO()
    w = csv.writer(out)

    w.writerow(["BASE ACTIVITY STATS"])
    w.writerow(["Generated", _generated_at()])
    w.writerow([])

    w.writerow(["Name", report.name])
    w.writerow(["Address", report.address])
    w.writerow([])

    w.writerow(["STATS"])
    for label, value in _stat_rows(report):
        w.writerow([label, value])
    w.writerow([])

    w.writerow(["Share URL", report.share_url])

    return out.getvalue().encode("utf-8")


def to_excel(report: StatsReport) -> bytes:
    """Export a stats report to a single-sheet Excel workbook."""
    import openpyxl
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Stats"

    accent = PatternFill(start_color="0052FF", end_color="0052FF", fill_type="solid")
    bold = Font(bold=True)

    ws.merge_cells("A1:C1")
    ws["A1"] = f"{report.name} - Base Activity Stats"
    ws["A1"].font = Font(bold=True, size=16, color="FFFFFF")
    ws["A1"].fill = accent
    ws["A1"].alignment = Alignment(horizontal="center")

    rows = [
        ("Address", report.address),
        ("Generated", _generated_at()),
        ("", ""),
        *_stat_rows(report),
        ("", ""),
        ("Share URL", report.share_url),
    ]
    for i, (label, value) in enumerate(rows, 3):
        ws[f"A{i}"] = label
        ws[f"A{i}"].font = bold
        ws[f"B{i}"] = value

    for col in ws.columns:
        max_len = max(len(str(cell.value or "")) for cell in col)
        ws.column_dimensions[get_column_letter(col[0].column)].width = min(max_len + 3, 60)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
