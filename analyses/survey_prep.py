# -*- coding: utf-8 -*-
"""
Loading and preparation of the developer survey table.

The survey ships one row per respondent with CamelCase headers
(`YearsCodedJob`, `TabsSpaces`, ...). Everything downstream works on
snake_case names and on the "df_clean" frame produced by `prepare_survey`:
professional developers with a positive salary and a pure Tabs or Spaces answer.

No row is ever reordered; rows are only filtered.
"""
import re
from pathlib import Path

import numpy as np
import pandas as pd
from loguru import logger

REQUIRED_COLUMNS = {'country', 'salary', 'tabs_spaces', 'professional', 'years_coded_job'}

OPTIONAL_COLUMNS = {
    'respondent', 'employment_status', 'program_hobby', 'version_control', 'company_size',
    'formal_education', 'developer_type', 'have_worked_language', 'years_program',
}

# Blank answers in these become NOT_ANSWERED: a descriptive level in median tables,
# excluded from independence tests and the salary model.
CATEGORICAL_COLUMNS = ['formal_education', 'company_size', 'employment_status']

PROFESSIONAL_LABEL = 'Professional developer'
FULL_TIME_LABEL = 'Employed full-time'
INDENTATION_CHOICES = ('Tabs', 'Spaces')
NOT_ANSWERED = 'Not answered'

OPEN_SOURCE_ANSWERS = {'Yes, I contribute to open source projects', 'Yes, both'}
HOBBY_ANSWERS = {'Yes, I program as a hobby', 'Yes, both'}

_RANGE_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s+to\s+(\d+(?:\.\d+)?)\s+years?\s*$', re.IGNORECASE)
_OR_MORE_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s+or\s+more\s+years?\s*$', re.IGNORECASE)
_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])')


def load_survey(csv_path) -> pd.DataFrame:
    """Reads the raw survey CSV."""
    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(f"Survey CSV not found at {path}")
    df = pd.read_csv(path, low_memory=False)
    df.attrs['name'] = str(path)
    return df


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Converts CamelCase or spaced headers to snake_case ('YearsCodedJob' -> 'years_coded_job')."""
    df_out = df.copy()
    df_out.columns = [
        _CAMEL_BOUNDARY.sub('_', str(c).strip()).lower().replace(' ', '_').replace('-', '_')
        for c in df_out.columns
    ]
    return df_out


def validate_schema(df: pd.DataFrame) -> None:
    """Raises ValueError when any required survey column is missing."""
    missing_cols = REQUIRED_COLUMNS - set(df.columns)
    if missing_cols:
        raise ValueError(f"Input data missing required columns: {sorted(missing_cols)}")
    absent_optional = OPTIONAL_COLUMNS - set(df.columns)
    if absent_optional:
        logger.info(f"Optional survey columns not present (related questions are skipped): {sorted(absent_optional)}")


def parse_years(value) -> float:
    """
    Maps the survey's experience answers to a number of years.

    "Less than a year" -> 0.5, "N to M years" -> midpoint, "N or more years" -> N.
    Plain numbers pass through; anything else is NaN.
    """
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return np.nan
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    text = str(value).strip()
    if not text:
        return np.nan
    if text.lower().startswith('less than a year'):
        return 0.5
    match = _RANGE_PATTERN.match(text)
    if match:
        low, high = float(match.group(1)), float(match.group(2))
        return (low + high) / 2
    match = _OR_MORE_PATTERN.match(text)
    if match:
        return float(match.group(1))
    try:
        return float(text)
    except ValueError:
        return np.nan


def _answer_flag(answers: pd.Series, positive) -> pd.Series:
    """Nullable boolean: True when the answer is in `positive`, NA when the question was skipped."""
    flag = answers.isin(positive).astype('boolean')
    flag[answers.isna()] = pd.NA
    return flag


def _strip_strings(df: pd.DataFrame) -> pd.DataFrame:
    df_out = df.copy()
    for col in df_out.select_dtypes(include=['object', 'string']).columns:
        stripped = df_out[col].str.strip().str.replace(r'\s+', ' ', regex=True)
        df_out[col] = stripped.replace('', np.nan)
    return df_out


def prepare_survey(df_raw: pd.DataFrame) -> pd.DataFrame:
    """
    Builds the analysis frame ("df_clean") from the raw survey.

    Keeps professional developers (employed full-time where that column exists)
    who reported a positive salary and answered exactly Tabs or Spaces, then
    derives numeric experience, log salary and the boolean flags used by the
    narrative questions.
    """
    df = normalize_columns(df_raw)
    validate_schema(df)
    df['salary'] = pd.to_numeric(df['salary'], errors='coerce')
    df = _strip_strings(df)
    n_start = len(df)

    mask = df['professional'].eq(PROFESSIONAL_LABEL)
    if 'employment_status' in df.columns:
        mask &= df['employment_status'].eq(FULL_TIME_LABEL)
    mask &= df['salary'].gt(0)
    mask &= df['tabs_spaces'].isin(INDENTATION_CHOICES)
    mask &= df['country'].notna()
    df = df.loc[mask].copy()
    logger.info(f"Kept {len(df):,} of {n_start:,} respondents (professional, salaried, Tabs or Spaces)")

    df['years_coded_job_num'] = df['years_coded_job'].map(parse_years)
    df['log_salary'] = np.log(df['salary'].astype(float))

    if 'program_hobby' in df.columns:
        df['open_source'] = _answer_flag(df['program_hobby'], OPEN_SOURCE_ANSWERS)
        df['hobby'] = _answer_flag(df['program_hobby'], HOBBY_ANSWERS)
    if 'version_control' in df.columns:
        df['uses_git'] = _answer_flag(df['version_control'], {'Git'})

    for col in CATEGORICAL_COLUMNS:
        if col in df.columns:
            df[col] = df[col].fillna(NOT_ANSWERED)

    df['salary_period'] = 'annual'
    return df


def explode_multi_value(df: pd.DataFrame, column: str, sep: str = ';') -> pd.DataFrame:
    """
    Expands a semicolon-separated answer into one row per respondent and token.
    The token replaces the original column; blank tokens are dropped.
    """
    if column not in df.columns:
        raise KeyError(f"Column '{column}' not in DataFrame")
    df_long = df.dropna(subset=[column]).copy()
    df_long[column] = df_long[column].astype(str).str.split(sep)
    df_long = df_long.explode(column)
    df_long[column] = df_long[column].str.strip()
    df_long = df_long[df_long[column].ne('')]
    return df_long


def lump_rare(series: pd.Series, min_n: int, other: str = 'Other') -> pd.Series:
    """Collapses categories with fewer than `min_n` observations into `other`."""
    counts = series.value_counts()
    rare = counts[counts < min_n].index
    return series.where(~series.isin(rare), other)


def top_categories(series: pd.Series, n: int) -> list:
    """The `n` most frequent non-null values, most frequent first."""
    return series.dropna().value_counts().head(n).index.tolist()
