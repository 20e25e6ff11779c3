"""
Tests for table export helpers.
"""
import os

import pandas as pd

from utils.data_io import export_dataframe, rename_for_display


def test_export_csv_with_display_names(tmp_path):
    df = pd.DataFrame({'country': ['Germany'], 'median_tabs': [50000.0]})
    csv_path = export_dataframe(df, 'q03', str(tmp_path / 'csv'), None, {'country': 'Country'})
    assert csv_path.endswith('q03.csv')
    back = pd.read_csv(csv_path)
    assert list(back.columns) == ['Country', 'median_tabs']
    assert list(df.columns) == ['country', 'median_tabs']


def test_export_excel(tmp_path):
    df = pd.DataFrame({'n': [1, 2]})
    export_dataframe(df, 'q01', str(tmp_path / 'csv'), str(tmp_path / 'xlsx'), {})
    assert os.path.exists(tmp_path / 'xlsx' / 'q01.xlsx')


def test_rename_for_display_keeps_unknown_columns():
    df = pd.DataFrame(columns=['n', 'mystery'])
    assert list(rename_for_display(df, {'n': 'Respondents'}).columns) == ['Respondents', 'mystery']
