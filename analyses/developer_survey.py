# -*- coding: utf-8 -*-
"""
Developer Survey: Tabs vs Spaces Salary Report
This script implements the narrative analysis behind the question "do developers
who indent with spaces earn more than those who use tabs?" over the developer
survey (one row per respondent), in the same framework style as the other
analyses.

Narrative points:
- MIX-01 Monthly vs annual salary reporting (two-component Gaussian mixture per country)
- Q01 Who uses tabs and who uses spaces (overall and by country)
- Q02 Overall median salaries and Welch t-test on log salary
- Q03 Medians within the largest countries
- Q04 Medians by years of professional coding
- Q05 Medians by developer type (multi-value answer)
- Q06 Medians by language worked with (multi-value answer)
- Q07 Version control: Git share, independence test, medians
- Q08 Open source contribution and hobby programming (Fisher exact tests)
- Q09 Medians by company size and formal education
- Q10 OLS on log salary with categorical controls
- Q11 Adjusted Spaces effect within each large country (FDR)

Notes:
- Only professional developers employed full-time with a positive salary and a pure
  Tabs or Spaces answer are analysed; "Both" is excluded from the comparisons.
- Medians are compared, never means, because salaries are heavily skewed.
- Minimum group sizes and FDR correction guard against noisy claims.
"""

# --------------------------------------------------------------------------------------
# Pretty console setup (Rich + Loguru)
# --------------------------------------------------------------------------------------

import os
import time
import warnings

import numpy as np
import pandas as pd

from rich.console import Console
from rich.theme import Theme
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.tree import Tree
from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn, TimeElapsedColumn
from rich.traceback import install as rich_traceback_install

from loguru import logger

from analyses.survey_prep import prepare_survey, explode_multi_value, top_categories
from analyses.salary_mixture import classify_reporting_period, apply_reporting_policy, MONTHLY
from analyses.survey_stats import (
    indentation_share,
    median_salary_by,
    tabs_spaces_medians,
    welch_log_salary_test,
    independence_test,
    fit_salary_model,
    spaces_effect_by_segment,
)
from utils.data_io import export_dataframe, rename_for_display
from utils.report_writer import SurveyReport
from utils.settings import SurveyAnalysisConfig

from visualizers.developer_survey_visualizer import (
    generate_visualizations,
    plot_salary_distribution,
    plot_mixture_histograms,
)

# Custom Rich theme for consistent styling throughout the console output
_custom_theme = Theme(
    {
        "phase": "bold bright_cyan",
        "question": "bold cyan",
        "good": "bold green",
        "warn": "bold yellow",
        "error": "bold red",
        "info": "cyan",
        "muted": "dim",
    }
)

console = Console(theme=_custom_theme, highlight=False)
rich_traceback_install(show_locals=False, width=120, extra_lines=2, word_wrap=True)

# Configure Loguru to write via Rich console with a neat format
logger.remove()
logger.add(
    console.print,
    level="INFO",
    colorize=True,
    format="<dim>{time:YYYY-MM-DD HH:mm:ss}</dim> | <level>{level: <8}</level> | "
           "<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
)

# --- Column Names for Exported Files ---
EXPORT_COLUMN_NAMES = {
    'country': 'Country',
    'tabs_spaces': 'Indentation',
    'n': 'Respondents',
    'share_pct': 'Share (%)',
    'median_salary': 'Median Salary',
    'n_tabs': 'Tabs (n)',
    'n_spaces': 'Spaces (n)',
    'median_tabs': 'Median Salary (Tabs)',
    'median_spaces': 'Median Salary (Spaces)',
    'spaces_premium_pct': 'Spaces Premium (%)',
    'years_coded_job_num': 'Years Coding Professionally',
    'developer_type': 'Developer Type',
    'language': 'Language',
    'version_control': 'Version Control',
    'company_size': 'Company Size',
    'formal_education': 'Formal Education',
    'open_source': 'Contributes to Open Source',
    'git_share_pct': 'Uses Git (%)',
    'open_source_share_pct': 'Contributes to Open Source (%)',
    'hobby_share_pct': 'Programs as a Hobby (%)',
    'mean_log_tabs': 'Mean log Salary (Tabs)',
    'mean_log_spaces': 'Mean log Salary (Spaces)',
    't_stat': 't Statistic',
    'p_value': 'p-value',
    'p_value_fdr': 'p-value (FDR)',
    'ratio_geometric': 'Geometric Mean Ratio (Spaces/Tabs)',
    'variable': 'Variable',
    'test': 'Test',
    'statistic': 'Statistic',
    'dof': 'Degrees of Freedom',
    'term': 'Term',
    'coef': 'Coefficient (log)',
    'se': 'Std. Error (HC3)',
    'ci_low': 'CI Low (log)',
    'ci_high': 'CI High (log)',
    'pct_effect': 'Effect (%)',
    'spaces_effect_pct': 'Spaces Effect (%)',
    'ci_low_pct': 'CI Low (%)',
    'ci_high_pct': 'CI High (%)',
    'r_squared': 'R²',
    'formula': 'Formula',
    'segment': 'Segment',
    'segment_value': 'Segment Value',
    'significant': 'Significant (FDR)',
    'n_low': 'Monthly (n)',
    'weight_low': 'Monthly Component Weight',
    'low_center': 'Monthly Component Center',
    'high_center': 'Annual Component Center',
    'separation': 'Separation (log10)',
    'applied': 'Applied',
}


# --------------------------------------------------------------------------------------
# Utility helpers for nice console output
# --------------------------------------------------------------------------------------

def _human_readable_bytes(num_bytes: int) -> str:
    """Return human-readable memory size string."""
    units = ["B", "KB", "MB", "GB", "TB"]
    size = float(num_bytes)
    for unit in units:
        if size < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} PB"


def _show_dataset_snapshot(df: pd.DataFrame, title: str = "Dataset overview"):
    """Show a compact metadata snapshot of DataFrame."""
    mem = df.memory_usage(deep=True).sum()
    table = Table(title=title, show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Metric", style="muted")
    table.add_column("Value", style="bold")
    table.add_row("Rows", f"{df.shape[0]:,}")
    table.add_row("Columns", f"{df.shape[1]:,}")
    table.add_row("Memory", _human_readable_bytes(mem))
    if 'tabs_spaces' in df.columns:
        for style, n in df['tabs_spaces'].value_counts().items():
            table.add_row(f"  {style}", f"{n:,}")
    console.print(table)


def _show_output_tree(output_root: str, dirs: list, title: str = "Saved outputs"):
    """Show a tree preview of the output directories and up to 10 files in each."""
    tree = Tree(f"[bold]Output[/] -> {output_root}", guide_style="bright_blue")
    for sub in dirs:
        node = tree.add(f"[bold]{os.path.basename(sub)}/[/] ({len(os.listdir(sub)) if os.path.exists(sub) else 0} files)")
        if os.path.exists(sub):
            files = sorted(os.listdir(sub))
            preview = files[:10]  # show up to 10 files for the preview
            for f in preview:
                node.add(f"{f}")
            if len(files) > len(preview):
                node.add(f"... and {len(files) - len(preview)} more")
        else:
            node.add("[muted]Directory not found[/]")
    console.print(Panel.fit(tree, title=title, border_style="bright_blue"))


COVARIATE_LABELS = {
    'country': 'country',
    'years_coded_job_num': 'experience',
    'formal_education': 'education',
    'company_size': 'company size',
    'open_source': 'open source contribution',
    'hobby': 'hobby programming',
    'uses_git': 'Git use',
}


def _describe_controls(covariates) -> str:
    labels = [COVARIATE_LABELS.get(c, c.replace('_', ' ')) for c in covariates if c != 'tabs_spaces']
    if not labels:
        return "no controls"
    if len(labels) == 1:
        return f"{labels[0]} as the only control"
    return f"{', '.join(labels[:-1])} and {labels[-1]} as controls"


def _fmt_money(value) -> str:
    return "n/a" if value is None or pd.isna(value) else f"${value:,.0f}"


def _fmt_pct(value) -> str:
    return "n/a" if value is None or pd.isna(value) else f"{value:+.1f}%"


def _fmt_p(p) -> str:
    if p is None or pd.isna(p):
        return "p = n/a"
    return "p < 0.001" if p < 0.001 else f"p = {p:.3f}"


def _share_by_indentation(df: pd.DataFrame, flags: dict) -> pd.DataFrame:
    """Share (%) of respondents with each boolean flag, per indentation style. Skipped answers are left out."""
    grouped = df.groupby('tabs_spaces', observed=True)
    out = grouped.size().rename('n').to_frame()
    for out_col, flag_col in flags.items():
        answered = df[flag_col].astype('Float64')
        out[out_col] = (answered.groupby(df['tabs_spaces']).mean() * 100).astype(float)
    return out.reset_index()


# --------------------------------------------------------------------------------------
# Report assembly
# --------------------------------------------------------------------------------------

def _build_report(cfg: SurveyAnalysisConfig, dfs: dict, charts: dict, facts: dict) -> SurveyReport:
    """Turns the computed tables, charts and headline numbers into the narrative report."""
    report = SurveyReport(
        title="Tabs vs Spaces: What the Developer Survey Says About Salaries",
        subtitle=cfg.description,
    )

    def table(section, key, caption, max_rows=20):
        if key in dfs:
            report.add_table(section, caption, rename_for_display(dfs[key], EXPORT_COLUMN_NAMES), max_rows=max_rows)

    def images(section, *keys):
        for key in keys:
            report.add_images(section, charts.get(key, []))

    s = report.add_section("Data", [
        f"The survey contains {facts['n_raw']:,} respondents. The analysis keeps professional developers "
        f"employed full-time who reported a positive salary and answered either Tabs or Spaces "
        f"(respondents who use both are excluded), leaving {facts['n_clean']:,} respondents.",
    ])
    table(s, 'q01_indentation_share', "Indentation preference of the analysed respondents")

    if 'mix01_mixture_summary' in dfs:
        policy_text = ("dropped from the analysis" if cfg.mixture_policy == 'drop'
                       else "annualized (multiplied by 12)")
        s = report.add_section("Monthly vs annual salaries", [
            f"In some countries the salary distribution has two clear humps: a share of respondents "
            f"entered a monthly salary. A two-component Gaussian mixture on log10(salary) separates them; "
            f"when the two centers are at least {cfg.mixture_min_separation:.2f} log10 units apart the low "
            f"component is treated as monthly reporting. {facts['n_monthly']:,} such salaries were {policy_text}.",
        ])
        table(s, 'mix01_mixture_summary', "Mixture fit per country")
        images(s, 'mix01_mixture_histograms')

    s = report.add_section("Who uses spaces?", [])
    table(s, 'q01_indentation_share_by_country', "Tabs vs Spaces in the largest countries")
    images(s, 'q01_indentation_share_by_country')

    welch = facts.get('welch', {})
    s = report.add_section("The salary gap", [
        f"The median developer who uses spaces earns {_fmt_money(welch.get('median_spaces'))}, against "
        f"{_fmt_money(welch.get('median_tabs'))} for tabs users. On the log scale the geometric mean ratio is "
        f"{welch.get('ratio_geometric', np.nan):.3f} (Welch t = {welch.get('t_stat', np.nan):.2f}, "
        f"{_fmt_p(welch.get('p_value'))}).",
    ])
    table(s, 'q02_overall_medians', "Median salary by indentation style")
    table(s, 'q02_welch_log_salary_test', "Welch t-test on log salary (Spaces vs Tabs)")
    images(s, 'q02_overall_medians', 'q02_salary_distribution')

    s = report.add_section("Within countries", [
        "The gap could simply reflect where spaces users live. Comparing within each large country "
        "removes that explanation.",
    ])
    table(s, 'q03_medians_by_country', "Median salary by country and indentation")
    images(s, 'q03_medians_by_country')

    s = report.add_section("Experience", [
        "Salaries grow with experience; the comparison below holds years of professional coding fixed.",
    ])
    table(s, 'q04_medians_by_experience', "Median salary by years coding professionally", max_rows=25)
    images(s, 'q04_medians_by_experience')

    if 'q05_medians_by_developer_type' in dfs:
        s = report.add_section("Developer roles", [
            "Respondents may pick several developer types; each respondent counts once per type.",
        ])
        table(s, 'q05_medians_by_developer_type', "Median salary by developer type")
        images(s, 'q05_medians_by_developer_type')

    if 'q06_medians_by_language' in dfs:
        s = report.add_section("Languages", [
            "Language communities have their own indentation conventions, so the gap is also "
            "compared within each language.",
        ])
        table(s, 'q06_medians_by_language', "Median salary by language worked with")
        images(s, 'q06_medians_by_language')

    if 'q07_version_control_independence' in dfs:
        vcs = facts.get('vcs_test', {})
        p_vcs = vcs.get('p_value')
        verdict = 'are associated' if p_vcs is not None and p_vcs < cfg.alpha else 'show no detectable association'
        s = report.add_section("Version control", [
            f"Indentation style and version control system {verdict} "
            f"({vcs.get('test')}, {_fmt_p(vcs.get('p_value'))}).",
        ])
        table(s, 'q07_git_share_by_indentation', "Share of Git users")
        table(s, 'q07_version_control_independence', "Independence test: indentation vs version control")
        table(s, 'q07_medians_by_version_control', "Median salary by version control")
        images(s, 'q07_git_share_by_indentation')

    if 'q08_fisher_tests' in dfs:
        s = report.add_section("Open source and hobby programming", [
            "Contributing to open source or programming as a hobby could go along with both spaces and "
            "higher pay. Fisher's exact test checks the association with indentation style.",
        ])
        table(s, 'q08_open_source_share_by_indentation', "Open source and hobby shares")
        table(s, 'q08_fisher_tests', "Fisher exact tests")
        table(s, 'q08_medians_by_open_source', "Median salary by open source contribution")
        images(s, 'q08_open_source_share_by_indentation')

    if 'q09_medians_by_company_size' in dfs or 'q09_medians_by_education' in dfs:
        s = report.add_section("Company size and education", [])
        table(s, 'q09_medians_by_company_size', "Median salary by company size")
        table(s, 'q09_medians_by_education', "Median salary by formal education")
        images(s, 'q09_medians_by_company_size', 'q09_medians_by_education')

    model = facts.get('model')
    if model:
        s = report.add_section("Controlling for everything at once", [
            f"A linear model on log salary with {_describe_controls(cfg.regression_covariates)} "
            f"estimates the Spaces effect at "
            f"{_fmt_pct(model['spaces_effect_pct'])} (95% CI {_fmt_pct(model['ci_low_pct'])} to "
            f"{_fmt_pct(model['ci_high_pct'])}, {_fmt_p(model['p_value'])}, n = {int(model['n']):,}, "
            f"R² = {model['r_squared']:.3f}).",
        ])
        table(s, 'q10_model_summary', "Model summary")
        table(s, 'q10_model_coefficients', "Model coefficients", max_rows=30)
        images(s, 'q10_model_coefficients')

    if 'q11_spaces_effect_by_country' in dfs:
        s = report.add_section("Country by country, adjusted", [
            "The same model fitted within each large country; p-values are corrected for multiple "
            "testing with Benjamini-Hochberg.",
        ])
        table(s, 'q11_spaces_effect_by_country', "Adjusted Spaces effect by country")
        images(s, 'q11_spaces_effect_by_country')

    return report


# --------------------------------------------------------------------------------------
# Main analysis function
# --------------------------------------------------------------------------------------

def run_analysis(df_raw_data: pd.DataFrame, config) -> dict:
    """
    Main execution function for the developer survey salary report.

    Required columns (CamelCase or snake_case):
        Country, Salary, TabsSpaces, Professional, YearsCodedJob
    Optional columns (related questions are skipped when absent):
        EmploymentStatus, ProgramHobby, VersionControl, CompanySize,
        FormalEducation, DeveloperType, HaveWorkedLanguage

    `config` is the project's entry from config.yaml (dict) or a SurveyAnalysisConfig.
    Returns the dictionary of all computed tables keyed by their export name.
    """

    # ==============================================================================
    # CONFIGURATION & CONSTANTS
    # ==============================================================================
    cfg = config if isinstance(config, SurveyAnalysisConfig) else SurveyAnalysisConfig.model_validate(config)
    MIN_N = cfg.min_group_n
    ALPHA = cfg.alpha

    warnings.filterwarnings("ignore", category=FutureWarning)
    warnings.filterwarnings("ignore", category=UserWarning)  # statsmodels/patsy occasionally warns on rank-deficiency

    # --- Output Directories ---
    OUTPUT_PROJECT_DIR = str(cfg.project_dir)
    OUTPUT_CSV_DIR = os.path.join(OUTPUT_PROJECT_DIR, 'csv_reports')
    OUTPUT_EXCEL_DIR = os.path.join(OUTPUT_PROJECT_DIR, 'excel_reports') if cfg.export_excel else None
    OUTPUT_CHARTS_DIR = os.path.join(OUTPUT_PROJECT_DIR, 'charts')
    for d in [OUTPUT_CSV_DIR, OUTPUT_EXCEL_DIR, OUTPUT_CHARTS_DIR]:
        if d:
            os.makedirs(d, exist_ok=True)

    # Dictionary to store all calculated DataFrames for later visualization and the report
    calculated_dfs = {}
    facts = {}

    def _export_df(df_to_export: pd.DataFrame, base_filename: str):
        export_dataframe(df_to_export, base_filename, OUTPUT_CSV_DIR, OUTPUT_EXCEL_DIR, EXPORT_COLUMN_NAMES)
        logger.debug(f"Exported DataFrame -> base='{base_filename}' into CSV/Excel directories.")
        if not df_to_export.empty:
            calculated_dfs[base_filename] = df_to_export

    console.print(
        Panel.fit(
            f"[phase]Developer Survey: Tabs vs Spaces[/phase]\n"
            f"[muted]Project folder:[/muted] [bold]{OUTPUT_PROJECT_DIR}[/bold]",
            border_style="bright_cyan",
            title="Initialization",
            subtitle="Ready to analyze",
        )
    )

    timings = {}
    t_start = time.perf_counter()

    # ==============================================================================
    # PHASE 1: DATA LOADING AND PREPARATION
    # ==============================================================================
    console.print(Rule(title="[phase]Phase 1: Data Preparation[/phase]", style="bright_cyan"))
    t_phase1 = time.perf_counter()
    facts['n_raw'] = len(df_raw_data)

    with Progress(
        SpinnerColumn(spinner_name="simpleDots", style="bright_magenta"),
        TextColumn("[progress.description]{task.description}", style="bright_magenta"),
        BarColumn(bar_width=None, style="blue", complete_style="cyan", finished_style="green"),
        TextColumn("{task.completed}/{task.total} • "),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as prep_progress:
        prep_task = prep_progress.add_task("[bold magenta]Preparing dataset[/]", total=3)

        try:
            df_prepared = prepare_survey(df_raw_data)
        except ValueError as e:
            console.print(Panel.fit(f"[error]{e}[/error]", border_style="red", title="Schema Error"))
            raise
        prep_progress.advance(prep_task)

        if df_prepared.empty:
            console.print(
                Panel.fit(
                    "[error]No respondents left after filtering (professional, salaried, Tabs or Spaces).[/error]",
                    border_style="red",
                    title="Validation Error",
                )
            )
            raise ValueError("No respondents left after filtering.")

        df_flagged, df_mixture = classify_reporting_period(
            df_prepared,
            cfg.mixture_countries,
            min_n=cfg.mixture_min_n,
            min_separation=cfg.mixture_min_separation,
            random_state=cfg.random_state,
        )
        prep_progress.advance(prep_task)

        df_clean = apply_reporting_policy(df_flagged, cfg.mixture_policy)
        facts['n_monthly'] = int(df_flagged['salary_period'].eq(MONTHLY).sum())
        facts['n_clean'] = len(df_clean)
        prep_progress.advance(prep_task)

    console.print(
        Panel.fit(
            f"[good]Master DataFrame 'df_clean' is ready[/good]\n"
            f"[muted]Dimensions:[/muted] {df_clean.shape[0]} rows, {df_clean.shape[1]} columns\n"
            f"[muted]Monthly salaries ({cfg.mixture_policy}):[/muted] {facts['n_monthly']}\n"
            f"[muted]Output path:[/muted] {OUTPUT_PROJECT_DIR}",
            title="Data prepared",
            border_style="green",
        )
    )
    _show_dataset_snapshot(df_clean, title="Dataset snapshot (df_clean)")
    timings["phase_1_prep"] = time.perf_counter() - t_phase1
    logger.success(f"Phase 1 completed in {timings['phase_1_prep']:.2f}s")

    # ==============================================================================
    # PHASE 2: NARRATIVE QUESTIONS
    # ==============================================================================
    console.print(Rule(title="[phase]Phase 2: Answering Narrative Questions[/phase]", style="bright_cyan"))
    t_phase2 = time.perf_counter()

    questions = [
        "MIX-01 Monthly vs annual salary reporting",
        "Q01 Tabs vs Spaces share",
        "Q02 Overall medians and Welch t-test",
        "Q03 Medians by country",
        "Q04 Medians by experience",
        "Q05 Medians by developer type",
        "Q06 Medians by language",
        "Q07 Version control",
        "Q08 Open source and hobby",
        "Q09 Company size and education",
        "Q10 Salary model (OLS)",
        "Q11 Spaces effect by country (FDR)",
    ]
    q_timings = {}
    top_countries = top_categories(df_clean['country'], cfg.top_countries)
    df_top = df_clean[df_clean['country'].isin(top_countries)]

    with Progress(
        SpinnerColumn(spinner_name="simpleDots", style="yellow"),
        TextColumn("[progress.description]{task.description}", style="bright_magenta"),
        BarColumn(bar_width=None, style="blue", complete_style="cyan", finished_style="green"),
        TextColumn("{task.completed}/{task.total} • "),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    ) as q_progress:
        q_task = q_progress.add_task("[bold yellow]Narrative Questions[/]", total=len(questions))

        # MIX-01: Mixture summary
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> MIX-01: Monthly vs annual salary reporting[/question]", border_style="cyan"))
        _export_df(df_mixture, 'mix01_mixture_summary')
        q_progress.advance(q_task)
        q_timings["MIX-01"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q01: Indentation share overall and by country
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> Q01: Who uses tabs, who uses spaces?[/question]", border_style="cyan"))
        _export_df(indentation_share(df_clean), 'q01_indentation_share')
        _export_df(indentation_share(df_top, by='country'), 'q01_indentation_share_by_country')
        q_progress.advance(q_task)
        q_timings["Q01"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q02: Overall medians and Welch t-test on log salary
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> Q02: Overall salary gap[/question]", border_style="cyan"))
        _export_df(median_salary_by(df_clean, 'tabs_spaces'), 'q02_overall_medians')
        facts['welch'] = welch_log_salary_test(df_clean)
        _export_df(pd.DataFrame([facts['welch']]), 'q02_welch_log_salary_test')
        logger.info(
            f"Median Spaces {_fmt_money(facts['welch']['median_spaces'])} vs Tabs "
            f"{_fmt_money(facts['welch']['median_tabs'])} ({_fmt_p(facts['welch']['p_value'])})"
        )
        q_progress.advance(q_task)
        q_timings["Q02"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q03: Medians within the largest countries
        q_start = time.perf_counter()
        console.print(Panel.fit(f"[question]-> Q03: Medians in the top {cfg.top_countries} countries[/question]", border_style="cyan"))
        _export_df(tabs_spaces_medians(df_top, 'country', MIN_N), 'q03_medians_by_country')
        q_progress.advance(q_task)
        q_timings["Q03"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q04: Medians by years of professional coding
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> Q04: Medians by years of professional coding[/question]", border_style="cyan"))
        df_exp = df_clean.dropna(subset=['years_coded_job_num'])
        df_q04 = tabs_spaces_medians(df_exp, 'years_coded_job_num', MIN_N)
        _export_df(df_q04.sort_values('years_coded_job_num').reset_index(drop=True), 'q04_medians_by_experience')
        q_progress.advance(q_task)
        q_timings["Q04"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q05: Developer type (multi-value)
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> Q05: Medians by developer type[/question]", border_style="cyan"))
        if 'developer_type' in df_clean.columns:
            df_roles = explode_multi_value(df_clean, 'developer_type')
            df_roles = df_roles[df_roles['developer_type'].isin(top_categories(df_roles['developer_type'], cfg.top_categories))]
            _export_df(tabs_spaces_medians(df_roles, 'developer_type', MIN_N), 'q05_medians_by_developer_type')
        else:
            logger.warning("Column 'developer_type' not present; Q05 skipped")
        q_progress.advance(q_task)
        q_timings["Q05"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q06: Language (multi-value)
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> Q06: Medians by language[/question]", border_style="cyan"))
        if 'have_worked_language' in df_clean.columns:
            df_langs = explode_multi_value(df_clean, 'have_worked_language').rename(columns={'have_worked_language': 'language'})
            df_langs = df_langs[df_langs['language'].isin(top_categories(df_langs['language'], cfg.top_categories))]
            _export_df(tabs_spaces_medians(df_langs, 'language', MIN_N), 'q06_medians_by_language')
        else:
            logger.warning("Column 'have_worked_language' not present; Q06 skipped")
        q_progress.advance(q_task)
        q_timings["Q06"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q07: Version control
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> Q07: Version control[/question]", border_style="cyan"))
        if 'version_control' in df_clean.columns:
            _export_df(_share_by_indentation(df_clean, {'git_share_pct': 'uses_git'}), 'q07_git_share_by_indentation')
            vcs_result, vcs_table = independence_test(df_clean, 'version_control', MIN_N)
            facts['vcs_test'] = vcs_result
            _export_df(pd.DataFrame([vcs_result]), 'q07_version_control_independence')
            _export_df(vcs_table.reset_index(), 'q07_version_control_contingency')
            _export_df(tabs_spaces_medians(df_clean, 'version_control', MIN_N), 'q07_medians_by_version_control')
        else:
            logger.warning("Column 'version_control' not present; Q07 skipped")
        q_progress.advance(q_task)
        q_timings["Q07"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q08: Open source and hobby programming
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> Q08: Open source and hobby programming[/question]", border_style="cyan"))
        if 'program_hobby' in df_clean.columns:
            _export_df(
                _share_by_indentation(df_clean, {'open_source_share_pct': 'open_source', 'hobby_share_pct': 'hobby'}),
                'q08_open_source_share_by_indentation',
            )
            fisher_rows = [independence_test(df_clean, col, MIN_N)[0] for col in ['open_source', 'hobby']]
            _export_df(pd.DataFrame(fisher_rows), 'q08_fisher_tests')
            _export_df(tabs_spaces_medians(df_clean, 'open_source', MIN_N), 'q08_medians_by_open_source')
        else:
            logger.warning("Column 'program_hobby' not present; Q08 skipped")
        q_progress.advance(q_task)
        q_timings["Q08"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q09: Company size and formal education
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> Q09: Company size and education[/question]", border_style="cyan"))
        if 'company_size' in df_clean.columns:
            _export_df(tabs_spaces_medians(df_clean, 'company_size', MIN_N), 'q09_medians_by_company_size')
        if 'formal_education' in df_clean.columns:
            _export_df(tabs_spaces_medians(df_clean, 'formal_education', MIN_N), 'q09_medians_by_education')
        q_progress.advance(q_task)
        q_timings["Q09"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q10: OLS on log salary
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> Q10: Salary model with controls (OLS, HC3)[/question]", border_style="cyan"))
        df_coefs, df_model = fit_salary_model(df_clean, cfg.regression_covariates, MIN_N)
        _export_df(df_coefs, 'q10_model_coefficients')
        _export_df(df_model, 'q10_model_summary')
        if not df_model.empty:
            facts['model'] = df_model.iloc[0].to_dict()
            logger.info(
                f"Adjusted Spaces effect {_fmt_pct(facts['model']['spaces_effect_pct'])} "
                f"({_fmt_p(facts['model']['p_value'])}, n={int(facts['model']['n']):,})"
            )
        q_progress.advance(q_task)
        q_timings["Q10"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

        # Q11: Spaces effect within each large country
        q_start = time.perf_counter()
        console.print(Panel.fit("[question]-> Q11: Adjusted Spaces effect by country (FDR)[/question]", border_style="cyan"))
        df_q11 = spaces_effect_by_segment(df_clean, 'country', cfg.regression_covariates,
                                          min_n=MIN_N, alpha=ALPHA, levels=top_countries)
        _export_df(df_q11, 'q11_spaces_effect_by_country')
        q_progress.advance(q_task)
        q_timings["Q11"] = time.perf_counter() - q_start
        console.print(Rule(style="bright_black"))

    timings["phase_2_questions"] = time.perf_counter() - t_phase2
    logger.success(f"Phase 2 completed in {timings['phase_2_questions']:.2f}s")
    console.print(Rule(style="bright_black"))

    # ==============================================================================
    # PHASE 3: VISUALIZATION
    # ==============================================================================
    console.print(Rule(title="[phase]Phase 3: Generating Visualizations[/phase]", style="bright_cyan"))
    t_phase3 = time.perf_counter()
    chart_paths = {}

    for filename, df_data in calculated_dfs.items():
        chart_paths[filename] = generate_visualizations(filename, df_data, calculated_dfs, OUTPUT_CHARTS_DIR, logger)

    try:
        chart_paths['q02_salary_distribution'] = plot_salary_distribution(
            df_clean, OUTPUT_CHARTS_DIR, 'q02_salary_distribution', interactive=cfg.interactive_charts
        )
    except Exception as e:
        logger.error(f"Failed to generate salary distribution chart. Error: {e}")
    try:
        mixture_chart = plot_mixture_histograms(df_flagged, cfg.mixture_countries, OUTPUT_CHARTS_DIR, 'mix01_mixture_histograms')
        chart_paths['mix01_mixture_histograms'] = [mixture_chart] if mixture_chart else []
    except Exception as e:
        logger.error(f"Failed to generate mixture histograms. Error: {e}")

    timings["phase_3_charts"] = time.perf_counter() - t_phase3
    logger.success(f"All visualizations have been generated ({sum(len(p) for p in chart_paths.values())} files).")

    # ==============================================================================
    # PHASE 4: REPORT
    # ==============================================================================
    console.print(Rule(title="[phase]Phase 4: Rendering Report[/phase]", style="bright_cyan"))
    t_phase4 = time.perf_counter()
    report = _build_report(cfg, calculated_dfs, chart_paths, facts)
    report_paths = report.save(OUTPUT_PROJECT_DIR, render_html=cfg.render_html)
    timings["phase_4_report"] = time.perf_counter() - t_phase4

    # ==============================================================================
    # WRAP-UP: EXECUTION STATS AND OUTPUT OVERVIEW
    # ==============================================================================
    total_elapsed = time.perf_counter() - t_start
    console.print(Rule(title="[phase]Execution summary[/phase]", style="bright_cyan"))

    table = Table(title="Execution timings", show_header=True, header_style="bold")
    table.add_column("Step", style="muted")
    table.add_column("Elapsed", style="bold")
    table.add_row("Phase 1: Data Preparation", f"{timings['phase_1_prep']:.2f}s")
    table.add_row("Phase 2: Narrative Questions", f"{timings['phase_2_questions']:.2f}s")
    for q, tval in q_timings.items():
        table.add_row(f"  {q}", f"{tval:.2f}s")
    table.add_row("Phase 3: Visualizations", f"{timings['phase_3_charts']:.2f}s")
    table.add_row("Phase 4: Report", f"{timings['phase_4_report']:.2f}s")
    table.add_row("Total runtime", f"{total_elapsed:.2f}s")
    console.print(table)

    _show_output_tree(
        output_root=OUTPUT_PROJECT_DIR,
        dirs=[d for d in [OUTPUT_CSV_DIR, OUTPUT_EXCEL_DIR, OUTPUT_CHARTS_DIR] if d],
        title="Saved reports",
    )

    console.print(
        Panel.fit(
            f"[good]Completed[/good] • Report: [bold]{report_paths[0]}[/bold]",
            border_style="green",
        )
    )
    logger.success("All done.")
    return calculated_dfs
