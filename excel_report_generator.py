"""
Excel Report Generator for Weekly Safety Reports
Writes the dashboard's current view as a landscape A4 workbook with the same
category / subcategory / field header layout as the on-screen table
"""

from datetime import datetime
from io import BytesIO
from typing import Sequence

import pandas as pd
import pytz
import xlsxwriter

from report_views import build_report_table
from weekly_report import WeeklyReport

HEADER_ROWS = 3
XLSX_MIME = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _merge_runs(labels):
    """Group consecutive equal labels into (start, end, label) runs"""
    runs = []
    start = 0
    for index in range(1, len(labels) + 1):
        if index == len(labels) or labels[index] != labels[start]:
            runs.append((start, index - 1, labels[start]))
            start = index
    return runs


def _write_header(worksheet, columns: pd.MultiIndex, header_format, title_row: int):
    """Three header rows; single-level columns span all three rows vertically"""
    levels = [[col[level] for col in columns] for level in range(3)]

    for start, end, label in _merge_runs(levels[0]):
        spans_all_levels = all(not columns[i][1] for i in range(start, end + 1))
        if spans_all_levels:
            for col in range(start, end + 1):
                worksheet.merge_range(title_row, col, title_row + 2, col, columns[col][0], header_format)
        elif start == end:
            worksheet.write(title_row, start, label, header_format)
        else:
            worksheet.merge_range(title_row, start, title_row, end, label, header_format)

    for level in (1, 2):
        for start, end, label in _merge_runs(levels[level]):
            if not columns[start][1]:
                continue
            if start == end:
                worksheet.write(title_row + level, start, label, header_format)
            else:
                worksheet.merge_range(title_row + level, start, title_row + level, end, label, header_format)


def generate_weekly_excel_report(reports: Sequence[WeeklyReport], heading: str,
                                 tz_name: str = 'Asia/Seoul') -> BytesIO:
    """
    Build the workbook for the given (already filtered and ordered) reports.
    Returns a BytesIO positioned at the start.
    """
    table = build_report_table(reports, tz_name)
    excel_buffer = BytesIO()

    workbook = xlsxwriter.Workbook(excel_buffer, {'in_memory': True})

    title_format = workbook.add_format({
        'bold': True,
        'font_size': 14,
        'align': 'left',
        'valign': 'vcenter'
    })

    header_format = workbook.add_format({
        'bold': True,
        'align': 'center',
        'valign': 'vcenter',
        'text_wrap': True,
        'bg_color': '#F3F4F6',
        'font_color': '#4B5563',
        'border': 1,
        'font_size': 9
    })

    cell_format = workbook.add_format({
        'align': 'left',
        'valign': 'top',
        'border': 1,
        'text_wrap': True,
        'font_size': 8
    })

    alt_row_format = workbook.add_format({
        'align': 'left',
        'valign': 'top',
        'border': 1,
        'text_wrap': True,
        'font_size': 8,
        'bg_color': '#F7F9FC'
    })

    worksheet = workbook.add_worksheet('주간 안전보건 점검')

    # Landscape A4, fit to one page wide, header rows repeated on every page
    worksheet.set_landscape()
    worksheet.set_paper(9)
    worksheet.set_margins(left=0.4, right=0.4, top=0.4, bottom=0.4)
    worksheet.fit_to_pages(1, 0)
    worksheet.repeat_rows(1, HEADER_ROWS)

    worksheet.write(0, 0, heading, title_format)
    _write_header(worksheet, table.columns, header_format, title_row=1)

    for row_offset, (_, row) in enumerate(table.iterrows()):
        row_format = alt_row_format if row_offset % 2 else cell_format
        excel_row = 1 + HEADER_ROWS + row_offset
        for col, value in enumerate(row.tolist()):
            worksheet.write_string(excel_row, col, '' if value is None else str(value), row_format)

    worksheet.set_column(0, 0, 12)
    worksheet.set_column(1, len(table.columns) - 1, 16)
    worksheet.freeze_panes(1 + HEADER_ROWS, 1)

    workbook.close()
    excel_buffer.seek(0)
    return excel_buffer


def generate_filename(week_label: str, tz_name: str = 'Asia/Seoul') -> str:
    """File name with the selected week first, e.g. 2025-W30_주간안전보고서_20250721_150405.xlsx"""
    clean_label = "".join(c for c in (week_label or '전체') if c.isalnum() or c in ('-', '_')).strip()
    timestamp = datetime.now(pytz.timezone(tz_name)).strftime("%Y%m%d_%H%M%S")
    return f"{clean_label}_주간안전보고서_{timestamp}.xlsx"
