"""
CSV and XLSX exports served as file downloads
"""

import csv
import io
from datetime import date
from typing import Any, Iterable, List, Optional, Sequence

from fastapi.responses import Response
from openpyxl import Workbook
from openpyxl.styles import Font

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def export_filename(feature: str, extension: str, filter_label: Optional[str] = None, on: Optional[date] = None) -> str:
    """``<feature>_<date>_<filter>.<ext>``"""
    stamp = (on or date.today()).isoformat()
    return f"{feature}_{stamp}_{filter_label or 'all'}.{extension}"


def rows_to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """
    One header line plus one line per row. Fields holding commas, quotes or
    newlines are quoted and inner quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    return buffer.getvalue()


def rows_to_xlsx(headers: Sequence[str], rows: Iterable[Sequence[Any]], sheet_title: str) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    ws.append(list(headers))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append(["" if value is None else value for value in row])
    for index, header in enumerate(headers, start=1):
        ws.column_dimensions[ws.cell(row=1, column=index).column_letter].width = max(12, len(str(header)) + 2)

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def download_response(content, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


def csv_response(headers: Sequence[str], rows: List[Sequence[Any]], filename: str) -> Response:
    return download_response(rows_to_csv(headers, rows), filename, CSV_MEDIA_TYPE)


def xlsx_response(headers: Sequence[str], rows: List[Sequence[Any]], filename: str, sheet_title: str) -> Response:
    return download_response(rows_to_xlsx(headers, rows, sheet_title), filename, XLSX_MEDIA_TYPE)
