"""
Shared fixtures: a synthetic developer survey with the real survey's column
names and answer wording.

Built-in effects the tests rely on:
- Spaces users earn about 8% more than Tabs users at equal country/experience.
- Roughly 30% of Indian respondents report a monthly salary (annual / 12).
"""
import numpy as np
import pandas as pd
import pytest

from analyses.survey_prep import prepare_survey

COUNTRIES = ['United States', 'India', 'Germany', 'United Kingdom', 'Canada', 'Poland']
COUNTRY_WEIGHTS = [0.30, 0.25, 0.15, 0.12, 0.10, 0.08]
BASE_SALARY = {
    'United States': 100_000, 'India': 20_000, 'Germany': 60_000,
    'United Kingdom': 60_000, 'Canada': 70_000, 'Poland': 30_000,
}
YEARS_ANSWERS = ['Less than a year', '1 to 2 years', '2 to 3 years', '5 to 6 years',
                 '9 to 10 years', '14 to 15 years', '20 or more years']
DEV_TYPES = ['Web developer', 'Mobile developer', 'Desktop applications developer', 'DevOps specialist']
LANGUAGES = ['JavaScript', 'Python', 'Java', 'C#', 'Go']
HOBBY_ANSWERS = ['Yes, I program as a hobby', 'Yes, I contribute to open source projects', 'Yes, both', 'No']
VCS = ['Git', 'Subversion', 'Team Foundation Server', 'Mercurial']
COMPANY_SIZES = ['Fewer than 10 employees', '100 to 499 employees', '10,000 or more employees']
EDUCATION = ["Bachelor's degree", "Master's degree", 'Some college/university study without earning a bachelor\'s degree']


def _multi(rng, options, n):
    out = []
    for _ in range(n):
        k = rng.integers(1, 3, endpoint=True)
        out.append('; '.join(rng.choice(options, size=k, replace=False)))
    return out


def make_survey(n: int = 1500, seed: int = 7, monthly_share_india: float = 0.3) -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    country = rng.choice(COUNTRIES, p=COUNTRY_WEIGHTS, size=n)
    tabs_spaces = rng.choice(['Tabs', 'Spaces', 'Both'], p=[0.42, 0.45, 0.13], size=n)
    years = rng.choice(YEARS_ANSWERS, size=n)
    years_num = pd.Series(years).map({
        'Less than a year': 0.5, '1 to 2 years': 1.5, '2 to 3 years': 2.5, '5 to 6 years': 5.5,
        '9 to 10 years': 9.5, '14 to 15 years': 14.5, '20 or more years': 20.0,
    }).to_numpy()

    base = np.array([BASE_SALARY[c] for c in country], dtype=float)
    salary = base * np.exp(0.03 * years_num) * np.where(tabs_spaces == 'Spaces', 1.08, 1.0)
    salary *= np.exp(rng.normal(0, 0.25, size=n))

    monthly = (country == 'India') & (rng.random(n) < monthly_share_india)
    salary = np.where(monthly, salary / 12, salary)
    salary = np.round(salary, 0)
    salary[rng.random(n) < 0.08] = np.nan

    return pd.DataFrame({
        'Respondent': np.arange(1, n + 1),
        'Professional': rng.choice(['Professional developer', 'Student'], p=[0.9, 0.1], size=n),
        'ProgramHobby': rng.choice(HOBBY_ANSWERS, size=n),
        'Country': country,
        'EmploymentStatus': rng.choice(['Employed full-time', 'Employed part-time'], p=[0.92, 0.08], size=n),
        'FormalEducation': rng.choice(EDUCATION, size=n),
        'CompanySize': rng.choice(COMPANY_SIZES, size=n),
        'YearsCodedJob': years,
        'DeveloperType': _multi(rng, DEV_TYPES, n),
        'HaveWorkedLanguage': _multi(rng, LANGUAGES, n),
        'VersionControl': rng.choice(VCS, p=[0.7, 0.12, 0.12, 0.06], size=n),
        'TabsSpaces': tabs_spaces,
        'Salary': salary,
    })


@pytest.fixture
def raw_survey() -> pd.DataFrame:
    return make_survey()


@pytest.fixture
def clean_survey(raw_survey) -> pd.DataFrame:
    return prepare_survey(raw_survey)


@pytest.fixture
def clean_survey_annual(clean_survey) -> pd.DataFrame:
    """Prepared survey without the country that mixes monthly and annual salaries."""
    return clean_survey[clean_survey['country'] != 'India'].copy()


@pytest.fixture
def survey_factory():
    return make_survey
