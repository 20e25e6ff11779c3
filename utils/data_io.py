# -*- coding: utf-8 -*-
"""
Utility functions for data input/output operations.
"""
import os
import pandas as pd
from loguru import logger


def export_dataframe(df_to_export, base_filename, output_csv_dir, output_excel_dir, column_map):
    """
    Saves a DataFrame as CSV (and as Excel when `output_excel_dir` is given) with
    user-friendly column names. Returns the CSV path.
    """
    df_export_copy = df_to_export.copy()
    df_export_copy = df_export_copy.rename(columns=column_map)

    os.makedirs(output_csv_dir, exist_ok=True)
    csv_path = os.path.join(output_csv_dir, f"{base_filename}.csv")
    df_export_copy.to_csv(csv_path, index=False, encoding='utf-8')

    if output_excel_dir:
        os.makedirs(output_excel_dir, exist_ok=True)
        excel_path = os.path.join(output_excel_dir, f"{base_filename}.xlsx")
        # Saving to Excel requires 'openpyxl'
        try:
            df_export_copy.to_excel(excel_path, index=False)
        except Exception as e:
            logger.warning(f"Could not save Excel file for '{base_filename}'. Make sure 'openpyxl' is installed. Error: {e}")

    return csv_path


def rename_for_display(df: pd.DataFrame, column_map: dict) -> pd.DataFrame:
    """Returns a copy with friendly column names, keeping unknown columns as-is."""
    return df.rename(columns={c: column_map.get(c, c) for c in df.columns})
