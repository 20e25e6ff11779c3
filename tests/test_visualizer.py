"""
Chart generation smoke tests (Agg backend, files written to tmp_path).
"""
import os

import pandas as pd
from loguru import logger

from analyses.survey_stats import tabs_spaces_medians, fit_salary_model, indentation_share
from visualizers.developer_survey_visualizer import (
    generate_visualizations,
    plot_salary_distribution,
    plot_mixture_histograms,
)


def test_router_draws_medians_by_country(clean_survey_annual, tmp_path):
    df = tabs_spaces_medians(clean_survey_annual, 'country', min_n=10)
    paths = generate_visualizations('q03_medians_by_country', df, {}, str(tmp_path), logger)
    assert len(paths) == 1
    assert paths[0].endswith('q03_medians_by_country.png')
    assert os.path.getsize(paths[0]) > 0


def test_router_draws_share_by_country(clean_survey, tmp_path):
    df = indentation_share(clean_survey, by='country')
    paths = generate_visualizations('q01_indentation_share_by_country', df, {}, str(tmp_path), logger)
    assert os.path.exists(paths[0])


def test_router_draws_model_coefficients(clean_survey_annual, tmp_path):
    coefs, _ = fit_salary_model(clean_survey_annual, ['country', 'years_coded_job_num'], min_n=10)
    paths = generate_visualizations('q10_model_coefficients', coefs, {}, str(tmp_path), logger)
    assert os.path.exists(paths[0])


def test_router_share_by_indentation(tmp_path):
    df = pd.DataFrame({'tabs_spaces': ['Spaces', 'Tabs'], 'n': [120, 100], 'git_share_pct': [78.0, 64.5]})
    paths = generate_visualizations('q07_git_share_by_indentation', df, {}, str(tmp_path), logger)
    assert os.path.exists(paths[0])


def test_router_ignores_unknown_and_empty(tmp_path):
    df = pd.DataFrame({'a': [1]})
    assert generate_visualizations('q99_not_a_chart', df, {}, str(tmp_path), logger) == []
    assert generate_visualizations('q03_medians_by_country', pd.DataFrame(), {}, str(tmp_path), logger) == []


def test_router_logs_and_skips_broken_table(tmp_path):
    broken = pd.DataFrame({'unexpected': [1, 2]})
    assert generate_visualizations('q04_medians_by_experience', broken, {}, str(tmp_path), logger) == []


def test_salary_distribution_static_only(clean_survey_annual, tmp_path):
    paths = plot_salary_distribution(clean_survey_annual, str(tmp_path), 'dist', interactive=False)
    assert [os.path.basename(p) for p in paths] == ['dist.png']


def test_mixture_histograms(clean_survey, tmp_path):
    assert plot_mixture_histograms(clean_survey, ['Atlantis'], str(tmp_path), 'mix') is None
    path = plot_mixture_histograms(clean_survey, ['India', 'Poland', 'Atlantis'], str(tmp_path), 'mix')
    assert os.path.exists(path)
