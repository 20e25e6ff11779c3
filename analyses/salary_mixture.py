# -*- coding: utf-8 -*-
"""
Monthly vs annual salary reporting.

In a handful of countries the salary distribution is clearly bimodal: part of
the respondents entered a monthly figure in an annual field. A two-component
Gaussian mixture on log10(salary) separates the two sub-populations; the low
component is treated as monthly reporting when the two centers are far enough
apart (a factor of 12 is 1.08 in log10 units).
"""
from dataclasses import dataclass

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.mixture import GaussianMixture

MONTHLY = 'monthly'
ANNUAL = 'annual'
MONTHS_PER_YEAR = 12


@dataclass
class MixtureFit:
    """Two-component fit on log10(salary); index 0 is always the low component."""
    means: np.ndarray
    stds: np.ndarray
    weights: np.ndarray
    labels: np.ndarray
    model: GaussianMixture

    @property
    def separation(self) -> float:
        return float(self.means[1] - self.means[0])


def fit_salary_mixture(salaries, random_state: int = 42) -> MixtureFit:
    """
    Fits a two-component GaussianMixture on log10 of positive salaries.
    Components are re-ordered by mean so that label 0 is the lower one.
    """
    values = np.asarray(salaries, dtype=float)
    if values.size < 2 or np.any(values <= 0):
        raise ValueError("Mixture fit needs at least two strictly positive salaries")

    x = np.log10(values).reshape(-1, 1)
    gmm = GaussianMixture(n_components=2, covariance_type='full', n_init=5, random_state=random_state)
    gmm.fit(x)

    order = np.argsort(gmm.means_.ravel())
    rank = np.empty_like(order)
    rank[order] = np.arange(len(order))

    means = gmm.means_.ravel()[order]
    stds = np.sqrt(gmm.covariances_.reshape(-1))[order]
    weights = gmm.weights_[order]
    labels = rank[gmm.predict(x)]
    return MixtureFit(means=means, stds=stds, weights=weights, labels=labels, model=gmm)


def classify_reporting_period(df: pd.DataFrame, countries, min_n: int = 50,
                              min_separation: float = 0.7, random_state: int = 42):
    """
    Flags respondents whose salary most likely was reported per month.

    Returns a copy of `df` with a `salary_period` column ('monthly' / 'annual')
    and a per-country summary. Countries absent from the data are skipped;
    countries with fewer than `min_n` salaries (two at the very least) are
    listed with applied=False.
    """
    df_flagged = df.copy()
    df_flagged['salary_period'] = ANNUAL
    rows = []

    for country in countries:
        country_mask = df_flagged['country'].eq(country) & df_flagged['salary'].gt(0)
        n = int(country_mask.sum())
        if n == 0:
            logger.debug(f"No respondents from '{country}', mixture skipped")
            continue
        required = max(min_n, 2)
        if n < required:
            logger.warning(f"Only {n} salaries for '{country}' (< {required}); mixture not applied")
            rows.append({'country': country, 'n': n, 'n_low': 0, 'weight_low': np.nan,
                         'low_center': np.nan, 'high_center': np.nan, 'separation': np.nan,
                         'applied': False})
            continue

        fit = fit_salary_mixture(df_flagged.loc[country_mask, 'salary'], random_state=random_state)
        applied = fit.separation >= min_separation
        n_low = int((fit.labels == 0).sum())
        if applied:
            low_index = df_flagged.index[country_mask][fit.labels == 0]
            df_flagged.loc[low_index, 'salary_period'] = MONTHLY
            logger.info(f"{country}: {n_low} of {n} salaries look monthly "
                        f"(centers {10 ** fit.means[0]:,.0f} vs {10 ** fit.means[1]:,.0f})")
        else:
            logger.info(f"{country}: components only {fit.separation:.2f} log10 apart; treated as one population")

        rows.append({
            'country': country,
            'n': n,
            'n_low': n_low if applied else 0,
            'weight_low': float(fit.weights[0]),
            'low_center': float(10 ** fit.means[0]),
            'high_center': float(10 ** fit.means[1]),
            'separation': fit.separation,
            'applied': bool(applied),
        })

    summary = pd.DataFrame(rows, columns=['country', 'n', 'n_low', 'weight_low', 'low_center',
                                          'high_center', 'separation', 'applied'])
    return df_flagged, summary


def apply_reporting_policy(df_flagged: pd.DataFrame, policy: str = 'drop') -> pd.DataFrame:
    """
    'drop' removes respondents flagged as monthly; 'annualize' multiplies their
    salary by 12 and recomputes the log salary.
    """
    if policy not in ('drop', 'annualize'):
        raise ValueError(f"Unknown mixture policy '{policy}'")

    is_monthly = df_flagged['salary_period'].eq(MONTHLY)
    if policy == 'drop':
        return df_flagged.loc[~is_monthly].copy()

    df_out = df_flagged.copy()
    df_out.loc[is_monthly, 'salary'] = df_out.loc[is_monthly, 'salary'] * MONTHS_PER_YEAR
    if 'log_salary' in df_out.columns:
        df_out['log_salary'] = np.log(df_out['salary'].astype(float))
    return df_out
