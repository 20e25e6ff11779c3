"""
End-to-end run of the narrative report on the synthetic survey.
"""
import pytest

import numpy as np
import pandas as pd

from analyses.developer_survey import run_analysis, _build_report
from utils.settings import SurveyAnalysisConfig


@pytest.fixture
def run_config(tmp_path):
    return {
        'description': 'Synthetic survey',
        'output_root': str(tmp_path),
        'output_dir': 'survey',
        'min_group_n': 10,
        'top_countries': 4,
        'mixture_countries': ['India', 'Ukraine'],
        'mixture_min_n': 30,
        'export_excel': False,
        'interactive_charts': False,
    }


def test_full_run_produces_tables_charts_and_report(tmp_path, run_config, survey_factory):
    dfs = run_analysis(survey_factory(), run_config)

    for key in ['mix01_mixture_summary', 'q01_indentation_share', 'q02_overall_medians',
                'q03_medians_by_country', 'q04_medians_by_experience', 'q05_medians_by_developer_type',
                'q06_medians_by_language', 'q07_version_control_independence', 'q08_fisher_tests',
                'q09_medians_by_company_size', 'q10_model_summary', 'q11_spaces_effect_by_country']:
        assert key in dfs, key

    project = tmp_path / 'survey'
    assert (project / 'csv_reports' / 'q03_medians_by_country.csv').exists()
    assert not (project / 'excel_reports').exists()
    assert (project / 'charts' / 'q03_medians_by_country.png').exists()
    assert (project / 'charts' / 'mix01_mixture_histograms.png').exists()

    md = (project / 'report.md').read_text(encoding='utf-8')
    assert md.startswith('# Tabs vs Spaces')
    assert '## Monthly vs annual salaries' in md
    assert '(charts/q03_medians_by_country.png)' in md
    assert (project / 'report.html').exists()


def test_monthly_salaries_are_dropped(run_config, survey_factory):
    dfs = run_analysis(survey_factory(), run_config)
    mixture = dfs['mix01_mixture_summary'].set_index('country')
    assert bool(mixture.loc['India', 'applied'])
    assert 'Ukraine' not in mixture.index
    share = dfs['q01_indentation_share']
    assert share['n'].sum() < len(survey_factory())


def test_annualize_keeps_respondents(run_config, survey_factory):
    dropped = run_analysis(survey_factory(), run_config)
    annualized = run_analysis(survey_factory(), {**run_config, 'mixture_policy': 'annualize'})
    assert annualized['q01_indentation_share']['n'].sum() > dropped['q01_indentation_share']['n'].sum()


def test_optional_columns_may_be_absent(run_config, survey_factory):
    raw = survey_factory(n=600).drop(columns=['DeveloperType', 'HaveWorkedLanguage', 'VersionControl', 'ProgramHobby'])
    dfs = run_analysis(raw, {**run_config, 'regression_covariates': ['country', 'years_coded_job_num']})
    assert 'q05_medians_by_developer_type' not in dfs
    assert 'q07_version_control_independence' not in dfs
    assert 'q03_medians_by_country' in dfs


def test_missing_required_column(run_config, survey_factory):
    with pytest.raises(ValueError, match="tabs_spaces"):
        run_analysis(survey_factory(n=50).drop(columns=['TabsSpaces']), run_config)


def test_nothing_left_after_filtering(run_config, survey_factory):
    raw = survey_factory(n=50).assign(Professional='Student')
    with pytest.raises(ValueError):
        run_analysis(raw, run_config)


def _report_markdown(cfg, vcs_p=0.5):
    dfs = {'q07_version_control_independence': pd.DataFrame([{'variable': 'version_control', 'p_value': vcs_p}])}
    facts = {
        'n_raw': 100,
        'n_clean': 80,
        'welch': {},
        'vcs_test': {'test': 'chi_square', 'p_value': vcs_p},
        'model': {'spaces_effect_pct': 8.0, 'ci_low_pct': 2.0, 'ci_high_pct': 14.0, 'p_value': 0.01,
                  'n': 80, 'r_squared': 0.4},
    }
    return _build_report(cfg, dfs, {}, facts).to_markdown()


def test_version_control_wording_follows_the_test():
    cfg = SurveyAnalysisConfig(alpha=0.05)
    assert "show no detectable association (chi_square, p = 0.930)" in _report_markdown(cfg, vcs_p=0.93)
    assert "version control system are associated (chi_square, p < 0.001)" in _report_markdown(cfg, vcs_p=1e-6)
    assert "show no detectable association" in _report_markdown(cfg, vcs_p=np.nan)


def test_model_paragraph_lists_configured_controls():
    cfg = SurveyAnalysisConfig(regression_covariates=['country', 'company_size'])
    md = _report_markdown(cfg)
    assert "with country and company size as controls estimates" in md
    assert "education" not in md
    assert "Git" not in md
