"""
Tests for the automated first-look EDA.
"""
import json
import os

import pandas as pd

from utils.primary_analyzer import (
    detect_multi_value_columns,
    count_multi_value_tokens,
    create_json_summary_report,
    perform_primary_analysis,
)


def test_detect_multi_value_columns(raw_survey):
    detected = detect_multi_value_columns(raw_survey)
    assert 'DeveloperType' in detected
    assert 'HaveWorkedLanguage' in detected
    assert 'Country' not in detected


def test_count_multi_value_tokens():
    df = pd.DataFrame({'lang': ['Python; Go', 'Python', None, 'Go; Python; Rust']})
    counts = count_multi_value_tokens(df, ['lang'])
    assert counts.set_index('token')['respondents'].to_dict() == {'Python': 3, 'Go': 2, 'Rust': 1}
    assert count_multi_value_tokens(df, []).empty


def test_json_summary(raw_survey, tmp_path):
    summary = create_json_summary_report(raw_survey, str(tmp_path), 'survey')
    on_disk = json.loads((tmp_path / 'survey_summary_report.json').read_text(encoding='utf-8'))
    assert on_disk['table_summary']['rows'] == len(raw_survey)
    assert summary['column_analysis']['Salary']['detected_type'] == 'numeric'
    assert summary['column_analysis']['DeveloperType']['detected_type'] == 'multi_value'
    assert summary['column_analysis']['Country']['detected_type'] == 'categorical'


def test_perform_primary_analysis(raw_survey, tmp_path):
    csv = tmp_path / 'survey.csv'
    raw_survey.to_csv(csv, index=False)
    config = {
        'input_file': str(csv),
        'output_root': str(tmp_path / 'out'),
        'output_dir': 'survey',
        'profile_report': False,
    }
    out_dir = perform_primary_analysis(config, 'developer_survey')
    assert out_dir == os.path.join(str(tmp_path / 'out'), 'survey', 'primary_analysis')
    for name in ['01_summary.txt', '02_missing_values.csv', '03_multi_value_tokens.csv',
                 'developer_survey_summary_report.json']:
        assert os.path.exists(os.path.join(out_dir, name)), name
    assert os.path.exists(os.path.join(out_dir, 'plots', 'hist_Salary.png'))


def test_perform_primary_analysis_missing_input(tmp_path):
    config = {'input_file': str(tmp_path / 'nope.csv'), 'output_root': str(tmp_path)}
    assert perform_primary_analysis(config, 'developer_survey') is None
