# print_layout.py
"""
Printable rendering of the dashboard table.
The stylesheet hides everything but the table and lays it out for landscape A4.
"""

from html import escape
from typing import Sequence

from report_views import PROOF_LINK_LABEL, format_created_at
from safety_taxonomy import CATEGORIES, FIELD_LABELS, LEAF_FIELDS, iter_leaves
from weekly_report import WeeklyReport

TABLE_STYLESHEET = """
.report-table { border-collapse: collapse; min-width: 100%; font-size: 12px; }
.report-table th, .report-table td { border: 1px solid #d1d5db; padding: 6px 8px; vertical-align: top; }
.report-table thead th { background: #f3f4f6; color: #4b5563; text-align: center; font-weight: 600; }
.report-table td.leaf { min-width: 100px; white-space: pre-wrap; color: #4b5563; }
.report-table td.site { white-space: nowrap; font-weight: 600; }
.report-table a { color: #2563eb; }
"""

PRINT_STYLESHEET = """
@media print {
  body * { visibility: hidden; }
  .print-container, .print-container * { visibility: visible; }
  .print-container { position: absolute; left: 0; top: 0; width: 100%; }
  .no-print { display: none !important; }
  table { font-size: 8px !important; border-collapse: collapse !important; }
  th, td {
    border: 1px solid #ccc !important;
    padding: 4px !important;
    word-break: break-all;
    white-space: pre-wrap !important;
  }
  thead { display: table-header-group !important; }
  tr { page-break-inside: avoid !important; }
  @page { size: A4 landscape; margin: 1cm; }
}
"""


def _header_rows(include_created_column: bool) -> str:
    created_header = '<th rowspan="3" class="no-print">제출일시</th>' if include_created_column else ''

    top = ['<th rowspan="3">현장명</th>']
    for cat in CATEGORIES:
        span = len(cat['subCategories']) * len(LEAF_FIELDS)
        top.append(f'<th colspan="{span}">{escape(cat["name"])}</th>')
    top.append('<th rowspan="3">증빙 링크</th>')

    middle = [f'<th colspan="{len(LEAF_FIELDS)}">{escape(sub["name"])}</th>' for _, sub in iter_leaves()]
    bottom = [f'<th>{FIELD_LABELS[field]}</th>' for _ in iter_leaves() for field in LEAF_FIELDS]

    return (
        f"<tr>{''.join(top)}{created_header}</tr>"
        f"<tr>{''.join(middle)}</tr>"
        f"<tr>{''.join(bottom)}</tr>"
    )


def _proof_link_cell(report: WeeklyReport) -> str:
    if not report.proof_link:
        return '<td></td>'
    href = escape(report.proof_link, quote=True)
    return f'<td><a href="{href}" target="_blank" rel="noopener noreferrer">{PROOF_LINK_LABEL}</a></td>'


def render_report_table(reports: Sequence[WeeklyReport], include_created_column: bool = False,
                        tz_name: str = 'Asia/Seoul') -> str:
    """HTML table with one row per report, rows in the order given"""
    body = []
    for report in reports:
        cells = [f'<td class="site">{escape(report.site_name)}</td>']
        for cat, sub in iter_leaves():
            leaf = report.leaf(cat['id'], sub['id'])
            cells.extend(f'<td class="leaf">{escape(leaf.get(field, ""))}</td>' for field in LEAF_FIELDS)
        cells.append(_proof_link_cell(report))
        if include_created_column:
            cells.append(f'<td class="no-print">{escape(format_created_at(report, tz_name))}</td>')
        body.append(f"<tr>{''.join(cells)}</tr>")

    return (
        '<table class="report-table">'
        f'<thead>{_header_rows(include_created_column)}</thead>'
        f'<tbody>{"".join(body)}</tbody>'
        '</table>'
    )


def build_print_document(reports: Sequence[WeeklyReport], heading: str, auto_print: bool = True) -> str:
    """Standalone HTML page holding only the table; opens the print dialog when loaded"""
    script = '<script>window.addEventListener("load", function () { window.print(); });</script>' if auto_print else ''
    return (
        '<!DOCTYPE html><html lang="ko"><head><meta charset="utf-8">'
        f'<style>{TABLE_STYLESHEET}{PRINT_STYLESHEET}</style></head><body>'
        f'<p class="no-print">{escape(heading)}</p>'
        f'<div class="print-container">{render_report_table(reports)}</div>'
        f'{script}</body></html>'
    )
