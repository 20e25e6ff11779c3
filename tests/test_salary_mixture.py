"""
Tests for the monthly vs annual salary mixture.
"""
import numpy as np
import pandas as pd
import pytest

from analyses.salary_mixture import (
    fit_salary_mixture,
    classify_reporting_period,
    apply_reporting_policy,
    MONTHLY,
    ANNUAL,
)


def _country_frame(country, log10_values):
    salary = np.round(10 ** np.asarray(log10_values), 0)
    return pd.DataFrame({'country': country, 'salary': salary, 'log_salary': np.log(salary)})


@pytest.fixture
def mixed_countries():
    rng = np.random.default_rng(3)
    bimodal = _country_frame('India', np.concatenate([rng.normal(5.9, 0.12, 300), rng.normal(4.8, 0.12, 150)]))
    unimodal = _country_frame('Germany', rng.normal(4.75, 0.12, 200))
    small = _country_frame('Canada', rng.normal(4.85, 0.12, 10))
    return pd.concat([bimodal, unimodal, small], ignore_index=True)


class TestFitSalaryMixture:

    def test_components_ordered_and_separated(self):
        rng = np.random.default_rng(0)
        values = 10 ** np.concatenate([rng.normal(4.3, 0.12, 300), rng.normal(3.2, 0.12, 150)])
        fit = fit_salary_mixture(values, random_state=0)
        assert fit.means[0] < fit.means[1]
        assert fit.separation == pytest.approx(1.1, abs=0.1)
        assert 130 <= (fit.labels == 0).sum() <= 170
        assert fit.weights.sum() == pytest.approx(1.0)

    def test_non_positive_salary_raises(self):
        with pytest.raises(ValueError):
            fit_salary_mixture([1000, 0, 2000])

    def test_too_few_values_raises(self):
        with pytest.raises(ValueError):
            fit_salary_mixture([1000])

    def test_reproducible_with_seed(self):
        rng = np.random.default_rng(1)
        values = 10 ** np.concatenate([rng.normal(4.3, 0.1, 80), rng.normal(3.2, 0.1, 40)])
        a = fit_salary_mixture(values, random_state=5)
        b = fit_salary_mixture(values, random_state=5)
        assert np.array_equal(a.labels, b.labels)


class TestClassifyReportingPeriod:

    def test_bimodal_country_is_flagged(self, mixed_countries):
        flagged, summary = classify_reporting_period(mixed_countries, ['India'], min_n=50)
        india = flagged[flagged['country'] == 'India']
        assert 130 <= (india['salary_period'] == MONTHLY).sum() <= 170
        assert (flagged.loc[flagged['country'] != 'India', 'salary_period'] == ANNUAL).all()
        row = summary.set_index('country').loc['India']
        assert bool(row['applied'])
        assert row['low_center'] < row['high_center']

    def test_unimodal_country_is_left_alone(self, mixed_countries):
        flagged, summary = classify_reporting_period(mixed_countries, ['Germany'], min_n=50)
        assert (flagged['salary_period'] == ANNUAL).all()
        assert not bool(summary.set_index('country').loc['Germany', 'applied'])

    def test_small_and_absent_countries(self, mixed_countries):
        _, summary = classify_reporting_period(mixed_countries, ['Canada', 'Atlantis'], min_n=50)
        assert summary['country'].tolist() == ['Canada']
        assert not bool(summary['applied'].iloc[0])
        assert np.isnan(summary['separation'].iloc[0])

    def test_single_salary_is_never_fitted(self):
        df = _country_frame('India', [4.9])
        flagged, summary = classify_reporting_period(df, ['India'], min_n=1)
        assert (flagged['salary_period'] == ANNUAL).all()
        row = summary.set_index('country').loc['India']
        assert row['n'] == 1
        assert not bool(row['applied'])

    def test_input_is_not_modified(self, mixed_countries):
        before = mixed_countries.copy()
        classify_reporting_period(mixed_countries, ['India'])
        pd.testing.assert_frame_equal(mixed_countries, before)


class TestApplyReportingPolicy:

    @pytest.fixture
    def flagged(self):
        return pd.DataFrame({
            'salary': [2000.0, 60000.0, 3000.0],
            'log_salary': np.log([2000.0, 60000.0, 3000.0]),
            'salary_period': [MONTHLY, ANNUAL, MONTHLY],
        })

    def test_drop(self, flagged):
        out = apply_reporting_policy(flagged, 'drop')
        assert out['salary'].tolist() == [60000.0]

    def test_annualize(self, flagged):
        out = apply_reporting_policy(flagged, 'annualize')
        assert out['salary'].tolist() == [24000.0, 60000.0, 36000.0]
        assert np.allclose(out['log_salary'], np.log(out['salary']))
        assert flagged['salary'].iloc[0] == 2000.0

    def test_unknown_policy(self, flagged):
        with pytest.raises(ValueError):
            apply_reporting_policy(flagged, 'ignore')
