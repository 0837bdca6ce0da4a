"""
Unit tests for CSV/XLSX export helpers and currency formatting
"""

import io
from datetime import date

from openpyxl import load_workbook

from portal.core.deployment import (
    format_bdt, format_bdt_words, format_currency, get_deployment_info, is_bdt, parse_bdt,
)
from portal.utils.export import CSV_MEDIA_TYPE, csv_response, export_filename, rows_to_csv, rows_to_xlsx


def test_export_filename_with_and_without_filter():
    assert export_filename("attendance", "csv", "ops", on=date(2026, 3, 5)) == "attendance_2026-03-05_ops.csv"
    assert export_filename("attendance", "xlsx", on=date(2026, 3, 5)) == "attendance_2026-03-05_all.xlsx"


def test_rows_to_csv_quotes_special_fields():
    content = rows_to_csv(["Name", "Note"], [["Ahmed, Rahim", 'said "hi"'], [None, 3]])

    assert content == 'Name,Note\n"Ahmed, Rahim","said ""hi"""\n,3\n'


def test_rows_to_xlsx_bold_header():
    data = rows_to_xlsx(["Employee ID", "Name"], [["E-1", "Karim"]], "Attendance")

    sheet = load_workbook(io.BytesIO(data)).active
    assert sheet.title == "Attendance"
    assert sheet["A1"].value == "Employee ID"
    assert sheet["A1"].font.bold
    assert sheet["B2"].value == "Karim"


def test_csv_response_is_attachment():
    response = csv_response(["A"], [["1"]], "report.csv")

    assert response.media_type == CSV_MEDIA_TYPE
    assert response.headers["content-disposition"] == 'attachment; filename="report.csv"'


def test_format_bdt():
    assert format_bdt(1234.5) == "৳1,234.50"
    assert format_currency(1234567.5) == "৳1,234,567.50"


def test_format_currency_bengali_uses_lakh_grouping():
    assert format_currency(1234567.5, "bn") == "৳১২,৩৪,৫৬৭.৫০"
    assert format_currency(999, "bn") == "৳৯৯৯.০০"


def test_format_bdt_words():
    assert format_bdt_words(0) == "0 BDT"
    assert format_bdt_words(15_000_000) == "1 Crore 50 Lakhs BDT"
    assert format_bdt_words(15_000_000, compact=True) == "1.5 Cr BDT"
    assert format_bdt_words(20_000_000) == "2 Crores BDT"
    assert format_bdt_words(250_000) == "2 Lakhs 50 Thousand BDT"
    assert format_bdt_words(100_000) == "1 Lakh BDT"
    assert format_bdt_words(1_500, compact=True) == "1.5K BDT"
    assert format_bdt_words(500) == "500 BDT"
    assert format_bdt_words(-100_000) == "-1 Lakh BDT"


def test_parse_bdt():
    assert parse_bdt("৳1,234.50") == 1234.5
    assert parse_bdt("not money") == 0.0
    assert parse_bdt("") == 0.0


def test_deployment_is_locked_to_bangladesh():
    info = get_deployment_info()

    assert info["countryCode"] == "BD"
    assert info["currencyCode"] == "BDT"
    assert info["isMultiCountry"] is False
    assert info["governance"]["CAN_CHANGE_CURRENCY"] is False
    assert is_bdt("BDT")
    assert not is_bdt("USD")
