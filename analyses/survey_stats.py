# -*- coding: utf-8 -*-
"""
Statistical building blocks for the tabs-vs-spaces narrative.

Every function takes the prepared survey frame (see `survey_prep.prepare_survey`)
and returns plain DataFrames / dicts that can be exported, plotted and dropped
into the report. Salaries are compared on medians; tests and models work on
natural-log salary.
"""
import numpy as np
import pandas as pd
from loguru import logger
from scipy import stats
import statsmodels.formula.api as smf
from statsmodels.stats.multitest import multipletests

from analyses.survey_prep import NOT_ANSWERED, lump_rare

INDENTATION_COL = 'tabs_spaces'
SPACES_TERM = 'C(tabs_spaces, Treatment(reference="Tabs"))[T.Spaces]'


def indentation_share(df: pd.DataFrame, by: str = None) -> pd.DataFrame:
    """Counts and percentage of Tabs / Spaces, overall or within each level of `by`."""
    if by is None:
        counts = df[INDENTATION_COL].value_counts().rename_axis(INDENTATION_COL).reset_index(name='n')
        counts['share_pct'] = 100.0 * counts['n'] / counts['n'].sum()
        return counts

    counts = df.groupby([by, INDENTATION_COL], observed=True).size().reset_index(name='n')
    totals = counts.groupby(by, observed=True)['n'].transform('sum')
    counts['share_pct'] = 100.0 * counts['n'] / totals
    return counts


def median_salary_by(df: pd.DataFrame, by, min_n: int = 1) -> pd.DataFrame:
    """Median salary and headcount per group; groups below `min_n` are dropped."""
    grouped = (
        df.groupby(by, observed=True)['salary']
          .agg(n='size', median_salary='median')
          .reset_index()
    )
    return grouped[grouped['n'] >= min_n].reset_index(drop=True)


def tabs_spaces_medians(df: pd.DataFrame, group_col: str, min_n: int = 1) -> pd.DataFrame:
    """
    Side-by-side median salary of Tabs and Spaces users for each level of `group_col`.

    Levels where either side has fewer than `min_n` respondents are dropped.
    `spaces_premium_pct` is 100 * (median_spaces / median_tabs - 1).
    """
    columns = [group_col, 'n_tabs', 'n_spaces', 'median_tabs', 'median_spaces', 'spaces_premium_pct']
    if df.empty:
        return pd.DataFrame(columns=columns)

    grouped = (
        df.groupby([group_col, INDENTATION_COL], observed=True)['salary']
          .agg(n='size', median='median')
          .reset_index()
    )
    wide = grouped.pivot(index=group_col, columns=INDENTATION_COL, values=['n', 'median'])
    wide = wide.reindex(columns=pd.MultiIndex.from_product([['n', 'median'], ['Tabs', 'Spaces']]))

    out = pd.DataFrame({
        group_col: wide.index,
        'n_tabs': wide[('n', 'Tabs')].fillna(0).astype(int).values,
        'n_spaces': wide[('n', 'Spaces')].fillna(0).astype(int).values,
        'median_tabs': wide[('median', 'Tabs')].values,
        'median_spaces': wide[('median', 'Spaces')].values,
    })
    out = out[(out['n_tabs'] >= min_n) & (out['n_spaces'] >= min_n)].copy()
    out['spaces_premium_pct'] = 100.0 * (out['median_spaces'] / out['median_tabs'] - 1)
    return out.sort_values('spaces_premium_pct', ascending=False).reset_index(drop=True)[columns]


def welch_log_salary_test(df: pd.DataFrame) -> dict:
    """Welch t-test on log salary, Spaces vs Tabs."""
    tabs = df.loc[df[INDENTATION_COL] == 'Tabs', 'log_salary'].dropna()
    spaces = df.loc[df[INDENTATION_COL] == 'Spaces', 'log_salary'].dropna()
    result = {
        'n_tabs': int(tabs.size),
        'n_spaces': int(spaces.size),
        'median_tabs': float(np.exp(tabs.median())) if tabs.size else np.nan,
        'median_spaces': float(np.exp(spaces.median())) if spaces.size else np.nan,
        'mean_log_tabs': float(tabs.mean()) if tabs.size else np.nan,
        'mean_log_spaces': float(spaces.mean()) if spaces.size else np.nan,
        't_stat': np.nan,
        'p_value': np.nan,
        'ratio_geometric': np.nan,
    }
    if tabs.size < 2 or spaces.size < 2:
        logger.warning("Not enough Tabs/Spaces salaries for a t-test")
        return result

    t_stat, p_value = stats.ttest_ind(spaces, tabs, equal_var=False)
    result['t_stat'] = float(t_stat)
    result['p_value'] = float(p_value)
    result['ratio_geometric'] = float(np.exp(result['mean_log_spaces'] - result['mean_log_tabs']))
    return result


def independence_test(df: pd.DataFrame, column: str, min_n: int = 1):
    """
    Tests whether indentation style is independent of `column`.

    Skipped answers (NA or NOT_ANSWERED) are left out of the table.
    Rare levels of `column` are lumped into 'Other'. A 2x2 table uses Fisher's
    exact test (statistic = odds ratio); larger tables use chi-square.
    Returns (result dict, observed contingency table).
    """
    data = df[[INDENTATION_COL, column]].dropna()
    values = data[column]
    if not pd.api.types.is_bool_dtype(values):
        data = data[values.ne(NOT_ANSWERED)]
        values = lump_rare(data[column].astype(str), min_n)
    observed = pd.crosstab(data[INDENTATION_COL], values)

    result = {'variable': column, 'test': None, 'statistic': np.nan, 'p_value': np.nan,
              'dof': np.nan, 'n': int(observed.values.sum())}
    if observed.shape[0] < 2 or observed.shape[1] < 2:
        logger.warning(f"Contingency table for '{column}' is degenerate {observed.shape}; test skipped")
        return result, observed

    if observed.shape == (2, 2):
        odds_ratio, p_value = stats.fisher_exact(observed.values)
        result.update(test='fisher_exact', statistic=float(odds_ratio), p_value=float(p_value), dof=1)
    else:
        chi2, p_value, dof, _ = stats.chi2_contingency(observed.values)
        result.update(test='chi_square', statistic=float(chi2), p_value=float(p_value), dof=int(dof))
    return result, observed


def _build_formula(df: pd.DataFrame, covariates, min_n: int):
    """Prepares modeling data and the Patsy formula; covariates without variation are skipped."""
    used = [c for c in covariates if c in df.columns and c != INDENTATION_COL]
    missing = [c for c in covariates if c not in df.columns]
    if missing:
        logger.warning(f"Covariates not in data, skipped: {missing}")

    data = df[['log_salary', INDENTATION_COL] + used].dropna().copy()
    for col in used:
        if not pd.api.types.is_numeric_dtype(data[col]) and not pd.api.types.is_bool_dtype(data[col]):
            data = data[data[col].ne(NOT_ANSWERED)].copy()
    terms = []
    for col in used:
        series = data[col]
        if pd.api.types.is_bool_dtype(series):
            data[col] = series.astype(int)
            if data[col].nunique() > 1:
                terms.append(col)
        elif pd.api.types.is_numeric_dtype(series):
            if series.nunique() > 1:
                terms.append(col)
        else:
            data[col] = lump_rare(series.astype(str), min_n)
            if data[col].nunique() > 1:
                terms.append(f'C({col})')
            else:
                logger.warning(f"Skipped {col}: insufficient variation")

    formula = f'log_salary ~ C({INDENTATION_COL}, Treatment(reference="Tabs"))'
    if terms:
        formula += ' + ' + ' + '.join(terms)
    return data, formula


def fit_salary_model(df: pd.DataFrame, covariates, min_n: int = 30):
    """
    OLS on log salary with HC3 robust errors:
    log_salary ~ C(tabs_spaces, Treatment("Tabs")) + covariates.

    Returns (coefficients, summary). Both are empty when the model cannot be fit.
    """
    coef_columns = ['term', 'coef', 'se', 'p_value', 'ci_low', 'ci_high', 'pct_effect']
    summary_columns = ['spaces_effect_pct', 'ci_low_pct', 'ci_high_pct', 'p_value', 'n', 'r_squared', 'formula']

    data, formula = _build_formula(df, covariates, min_n)
    if data[INDENTATION_COL].nunique() < 2:
        logger.warning("Both Tabs and Spaces are needed to fit the salary model")
        return pd.DataFrame(columns=coef_columns), pd.DataFrame(columns=summary_columns)

    try:
        model = smf.ols(formula=formula, data=data).fit(cov_type='HC3')
    except Exception as e:
        logger.warning(f"OLS failed: {e}")
        return pd.DataFrame(columns=coef_columns), pd.DataFrame(columns=summary_columns)

    conf = model.conf_int()
    coefs = pd.DataFrame({
        'term': model.params.index,
        'coef': model.params.values,
        'se': model.bse.values,
        'p_value': model.pvalues.values,
        'ci_low': conf[0].values,
        'ci_high': conf[1].values,
    })
    # Log points to percent effect: (exp(beta) - 1) * 100
    coefs['pct_effect'] = (np.exp(coefs['coef']) - 1) * 100

    to_pct = lambda x: (np.exp(x) - 1) * 100
    summary = pd.DataFrame([{
        'spaces_effect_pct': to_pct(model.params[SPACES_TERM]),
        'ci_low_pct': to_pct(conf.loc[SPACES_TERM, 0]),
        'ci_high_pct': to_pct(conf.loc[SPACES_TERM, 1]),
        'p_value': float(model.pvalues[SPACES_TERM]),
        'n': int(model.nobs),
        'r_squared': float(model.rsquared),
        'formula': formula,
    }])
    return coefs, summary


def spaces_effect_by_segment(df: pd.DataFrame, segment: str, covariates, min_n: int = 30,
                             alpha: float = 0.05, levels=None) -> pd.DataFrame:
    """
    Fits the salary model within each level of `segment` (without the segment
    itself as a covariate) and applies Benjamini-Hochberg correction across levels.
    """
    local_covariates = [c for c in covariates if c != segment]
    results = []
    for seg_val, g in df.groupby(segment, observed=True):
        if levels is not None and seg_val not in levels:
            continue
        n_tabs = int((g[INDENTATION_COL] == 'Tabs').sum())
        n_spaces = int((g[INDENTATION_COL] == 'Spaces').sum())
        if n_tabs < min_n or n_spaces < min_n:
            continue
        _, local_summary = fit_salary_model(g, local_covariates, min_n=min_n)
        if local_summary.empty:
            logger.warning(f"Local OLS failed for {segment}={seg_val}")
            continue
        row = local_summary.iloc[0]
        results.append({
            'segment': segment,
            'segment_value': seg_val,
            'n': int(row['n']),
            'n_tabs': n_tabs,
            'n_spaces': n_spaces,
            'spaces_effect_pct': row['spaces_effect_pct'],
            'ci_low_pct': row['ci_low_pct'],
            'ci_high_pct': row['ci_high_pct'],
            'p_value': row['p_value'],
        })

    df_res = pd.DataFrame(results)
    if df_res.empty:
        return df_res
    try:
        reject, p_adj, _, _ = multipletests(df_res['p_value'], alpha=alpha, method='fdr_bh')
        df_res['p_value_fdr'] = p_adj
        df_res['significant'] = reject
    except Exception as e:
        logger.warning(f"FDR correction failed for segment '{segment}': {e}")
        df_res['p_value_fdr'] = df_res['p_value']
        df_res['significant'] = df_res['p_value'] < alpha
    return df_res.sort_values('spaces_effect_pct', ascending=False).reset_index(drop=True)
