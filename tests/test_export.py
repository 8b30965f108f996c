from datetime import date, datetime

import pytest

from smartspend.export import export_filename, expenses_to_csv, format_export_amount, quote_if_needed
from smartspend.models import Expense


def _lunch():
    return Expense('1', 250.0, 'Food & Drinks', 'Lunch "special"', datetime(2024, 1, 5, 13, 0))


def test_export_header_and_escaped_row():
    lines = expenses_to_csv([_lunch()], 'Asha').split('\n')
    assert lines[0] == 'User,Date,Category,Amount (INR),Description'
    assert lines[1] == '"Asha",1/5/2024,Food & Drinks,250,"Lunch ""special"""'


def test_export_keeps_input_order_and_fractional_amounts():
    expenses = [
        _lunch(),
        Expense('2', 99.5, 'Mobile', 'Recharge, prepaid', datetime(2024, 11, 23)),
    ]
    lines = expenses_to_csv(expenses, 'O"Neil').split('\n')
    assert len(lines) == 3
    assert lines[2] == '"O""Neil",11/23/2024,Mobile,99.5,"Recharge, prepaid"'


def test_category_quoted_only_when_needed():
    assert quote_if_needed('Food & Drinks') == 'Food & Drinks'
    assert quote_if_needed('Food, Drinks') == '"Food, Drinks"'


def test_format_export_amount():
    assert format_export_amount(250.0) == '250'
    assert format_export_amount(12.25) == '12.25'


def test_export_empty_list_raises():
    with pytest.raises(ValueError, match='No transaction data'):
        expenses_to_csv([], 'Asha')


def test_export_filename_embeds_date():
    assert export_filename(date(2024, 3, 9)) == 'smartspend-expenses-2024-03-09.csv'
