# -*- coding: utf-8 -*-
"""
Generates and saves visualizations for the developer survey salary report.

Most charts are produced from the summary tables exported by the analysis
(routed by their base filename); two charts need respondent-level data and
are called directly: the salary distribution by indentation style and the
per-country mixture histograms.

Every plotting function returns the path(s) of what it saved so the report
can embed them.
"""
import numpy as np
import pandas as pd
import matplotlib
import matplotlib.pyplot as plt
import seaborn as sns
import plotly.express as px

from utils.plotting import (
    save_matplotlib_figure,
    export_plotly_figure,
    create_barplot_with_optional_hue,
    format_currency_axis,
)

matplotlib.use('Agg')

# --- Global Plotting Style Configuration ---
sns.set_theme(style="whitegrid")
plt.rcParams['figure.figsize'] = (12, 7)
plt.rcParams['axes.titlesize'] = 16
plt.rcParams['axes.labelsize'] = 12

INDENTATION_PALETTE = {'Tabs': 'tab:orange', 'Spaces': 'tab:blue'}
INDENTATION_ORDER = ['Tabs', 'Spaces']
PERIOD_PALETTE = {'annual': 'tab:green', 'monthly': 'tab:red'}


def _get_plot_data(df_input: pd.DataFrame, sort_by_col: str, max_categories: int = 20) -> tuple[pd.DataFrame, bool]:
    """
    Sorts and trims a DataFrame for plotting; keeps the top and bottom halves
    when there are too many categories. Returns the frame and whether it was trimmed.
    """
    df_sorted = df_input.sort_values(by=sort_by_col, ascending=False)
    if len(df_sorted) > max_categories:
        df_top = df_sorted.head(max_categories // 2)
        df_bottom = df_sorted.tail(max_categories // 2)
        return pd.concat([df_top, df_bottom]), True
    return df_sorted, False


def plot_indentation_share_by_country(df_share: pd.DataFrame, output_dir: str, filename: str):
    """Stacked horizontal bars: share of Tabs vs Spaces users within each country."""
    group_col = df_share.columns[0]
    df_pivot = (
        df_share.pivot_table(index=group_col, columns='tabs_spaces', values='share_pct', observed=True)
                .reindex(columns=INDENTATION_ORDER)
                .fillna(0)
                .sort_values('Spaces')
    )
    fig, ax = plt.subplots(figsize=(12, max(4, 0.5 * len(df_pivot) + 2)))
    df_pivot.plot(kind='barh', stacked=True, ax=ax,
                  color=[INDENTATION_PALETTE[c] for c in df_pivot.columns])
    ax.set_title('Tabs vs Spaces by Country')
    ax.set_xlabel('Share of respondents (%)')
    ax.set_ylabel('')
    ax.set_xlim(0, 100)
    ax.legend(title='Indentation')
    return save_matplotlib_figure(fig, filename, output_dir)


def plot_overall_medians(df_medians: pd.DataFrame, output_dir: str, filename: str):
    """Median salary of Tabs vs Spaces users over the whole sample."""
    fig, ax = plt.subplots(figsize=(8, 6))
    order = [c for c in INDENTATION_ORDER if c in set(df_medians['tabs_spaces'])]
    create_barplot_with_optional_hue(ax, df_medians, x='tabs_spaces', y='median_salary', hue='tabs_spaces',
                                     palette=INDENTATION_PALETTE, order=order, hue_order=order)
    ax.set_title('Median Salary by Indentation Style')
    ax.set_xlabel('')
    ax.set_ylabel('Median annual salary (USD)')
    format_currency_axis(ax.yaxis)
    return save_matplotlib_figure(fig, filename, output_dir)


def plot_tabs_spaces_medians(df_medians: pd.DataFrame, output_dir: str, filename: str):
    """Grouped horizontal bars of median salary for Tabs and Spaces within each group."""
    group_col = df_medians.columns[0]
    df_plot, was_trimmed = _get_plot_data(df_medians, 'median_spaces', 20)
    df_melted = df_plot.melt(id_vars=group_col, value_vars=['median_tabs', 'median_spaces'],
                             var_name='tabs_spaces', value_name='median_salary')
    df_melted['tabs_spaces'] = df_melted['tabs_spaces'].map({'median_tabs': 'Tabs', 'median_spaces': 'Spaces'})
    df_melted[group_col] = df_melted[group_col].astype(str)

    fig, ax = plt.subplots(figsize=(12, max(5, 0.6 * len(df_plot) + 2)))
    sns.barplot(data=df_melted, y=group_col, x='median_salary', hue='tabs_spaces',
                hue_order=INDENTATION_ORDER, palette=INDENTATION_PALETTE, ax=ax)
    title = f"Median Salary by {group_col.replace('_', ' ').title()} and Indentation"
    if was_trimmed:
        title += '\n(Top & Bottom 10)'
    ax.set_title(title)
    ax.set_xlabel('Median annual salary (USD)')
    ax.set_ylabel('')
    format_currency_axis(ax.xaxis)
    ax.legend(title='Indentation')
    return save_matplotlib_figure(fig, filename, output_dir)


def plot_medians_by_experience(df_medians: pd.DataFrame, output_dir: str, filename: str):
    """Median salary against years of professional coding, one line per indentation style."""
    df_melted = df_medians.melt(id_vars='years_coded_job_num', value_vars=['median_tabs', 'median_spaces'],
                                var_name='tabs_spaces', value_name='median_salary')
    df_melted['tabs_spaces'] = df_melted['tabs_spaces'].map({'median_tabs': 'Tabs', 'median_spaces': 'Spaces'})

    fig, ax = plt.subplots()
    sns.lineplot(data=df_melted, x='years_coded_job_num', y='median_salary', hue='tabs_spaces',
                 hue_order=INDENTATION_ORDER, palette=INDENTATION_PALETTE, marker='o', ax=ax)
    ax.set_title('Median Salary by Years of Professional Coding')
    ax.set_xlabel('Years coding professionally')
    ax.set_ylabel('Median annual salary (USD)')
    format_currency_axis(ax.yaxis)
    ax.legend(title='Indentation')
    return save_matplotlib_figure(fig, filename, output_dir)


def plot_spaces_premium(df_medians: pd.DataFrame, output_dir: str, filename: str):
    """Horizontal bars of the Spaces median premium (%) per group; blue favours Spaces."""
    group_col = df_medians.columns[0]
    df_plot, was_trimmed = _get_plot_data(df_medians, 'spaces_premium_pct', 20)
    df_plot = df_plot.sort_values('spaces_premium_pct')

    fig, ax = plt.subplots(figsize=(12, max(5, 0.45 * len(df_plot) + 2)))
    colors = [INDENTATION_PALETTE['Spaces'] if x > 0 else INDENTATION_PALETTE['Tabs']
              for x in df_plot['spaces_premium_pct']]
    ax.barh(df_plot[group_col].astype(str), df_plot['spaces_premium_pct'], color=colors)
    ax.axvline(0, color='k', linestyle='--')
    title = f"Spaces Salary Premium by {group_col.replace('_', ' ').title()}"
    if was_trimmed:
        title += '\n(Top & Bottom 10)'
    ax.set_title(title)
    ax.set_xlabel('Median salary premium of Spaces over Tabs (%)')
    ax.set_ylabel('')
    return save_matplotlib_figure(fig, filename, output_dir)


def plot_share_by_indentation(df_share: pd.DataFrame, output_dir: str, filename: str):
    """Bar chart of a yes/no trait share (e.g. uses Git) for Tabs and Spaces users."""
    value_col = [c for c in df_share.columns if c.endswith('_share_pct')][0]
    fig, ax = plt.subplots(figsize=(8, 6))
    order = [c for c in INDENTATION_ORDER if c in set(df_share['tabs_spaces'])]
    create_barplot_with_optional_hue(ax, df_share, x='tabs_spaces', y=value_col, hue='tabs_spaces',
                                     palette=INDENTATION_PALETTE, order=order, hue_order=order)
    label = value_col.replace('_share_pct', '').replace('_', ' ')
    ax.set_title(f'Share of Respondents: {label.title()}')
    ax.set_xlabel('')
    ax.set_ylabel('Share (%)')
    ax.set_ylim(0, 100)
    return save_matplotlib_figure(fig, filename, output_dir)


def plot_model_coefficients(df_coefs: pd.DataFrame, output_dir: str, filename: str):
    """Coefficient plot of the salary model (percent effects with 95% CI), intercept excluded."""
    df_plot = df_coefs[df_coefs['term'] != 'Intercept'].copy()
    df_plot['ci_low_pct'] = (np.exp(df_plot['ci_low']) - 1) * 100
    df_plot['ci_high_pct'] = (np.exp(df_plot['ci_high']) - 1) * 100
    df_plot['label'] = (
        df_plot['term']
        .str.replace(r'C\(tabs_spaces, Treatment\(reference="Tabs"\)\)\[T\.(\w+)\]', r'Indentation: \1', regex=True)
        .str.replace(r'C\((\w+)\)\[T\.(.+)\]', r'\1: \2', regex=True)
    )
    df_plot, _ = _get_plot_data(df_plot, 'pct_effect', 30)
    df_plot = df_plot.sort_values('pct_effect')

    fig, ax = plt.subplots(figsize=(12, max(5, 0.4 * len(df_plot) + 2)))
    y_pos = np.arange(len(df_plot))
    colors = ['tab:red' if 'Indentation' in lbl else 'tab:gray' for lbl in df_plot['label']]
    ax.scatter(df_plot['pct_effect'], y_pos, color=colors, zorder=3)
    ax.errorbar(x=df_plot['pct_effect'], y=y_pos,
                xerr=[df_plot['pct_effect'] - df_plot['ci_low_pct'], df_plot['ci_high_pct'] - df_plot['pct_effect']],
                fmt='none', c='black', capsize=3)
    ax.set_yticks(y_pos)
    ax.set_yticklabels(df_plot['label'])
    ax.axvline(0, color='k', linestyle='--')
    ax.set_title('Salary Model: Effect on Salary (%, 95% CI)')
    ax.set_xlabel('Effect on salary (%)')
    return save_matplotlib_figure(fig, filename, output_dir)


def plot_spaces_effect_by_segment(df_effects: pd.DataFrame, output_dir: str, filename: str):
    """Adjusted Spaces effect within each segment level with its confidence interval."""
    df_plot = df_effects.sort_values('spaces_effect_pct').reset_index(drop=True)
    y_pos = np.arange(len(df_plot))

    fig, ax = plt.subplots(figsize=(12, max(4, 0.6 * len(df_plot) + 2)))
    colors = [INDENTATION_PALETTE['Spaces'] if x > 0 else INDENTATION_PALETTE['Tabs']
              for x in df_plot['spaces_effect_pct']]
    ax.barh(y_pos, df_plot['spaces_effect_pct'], color=colors)
    ax.errorbar(x=df_plot['spaces_effect_pct'], y=y_pos,
                xerr=[df_plot['spaces_effect_pct'] - df_plot['ci_low_pct'],
                      df_plot['ci_high_pct'] - df_plot['spaces_effect_pct']],
                fmt='none', c='black', capsize=3)
    ax.set_yticks(y_pos)
    ax.set_yticklabels(df_plot['segment_value'].astype(str))
    ax.axvline(0, color='k', linestyle='--')
    ax.set_title('Adjusted Spaces Effect by Country (with 95% CI)')
    ax.set_xlabel('Salary effect of Spaces vs Tabs (%), controls included')
    return save_matplotlib_figure(fig, filename, output_dir)


def plot_salary_distribution(df_clean: pd.DataFrame, output_dir: str, filename: str, interactive: bool = True):
    """Salary density by indentation style (log scale), plus an optional Plotly box plot."""
    paths = []
    fig, ax = plt.subplots()
    sns.kdeplot(data=df_clean, x='salary', hue='tabs_spaces', hue_order=INDENTATION_ORDER,
                palette=INDENTATION_PALETTE, log_scale=True, common_norm=False, fill=True, alpha=0.3, ax=ax)
    ax.set_title('Salary Distribution by Indentation Style')
    ax.set_xlabel('Annual salary (USD, log scale)')
    ax.set_ylabel('Density')
    paths.append(save_matplotlib_figure(fig, filename, output_dir))

    if interactive:
        fig_box = px.box(
            df_clean, x='tabs_spaces', y='salary', color='tabs_spaces', log_y=True,
            category_orders={'tabs_spaces': INDENTATION_ORDER},
            color_discrete_map=INDENTATION_PALETTE,
            title='Salary by Indentation Style (Plotly)',
            labels={'tabs_spaces': 'Indentation', 'salary': 'Annual salary (USD)'},
        )
        fig_box.update_layout(title_x=0.5, showlegend=False)
        paths.append(export_plotly_figure(fig_box, f"{filename}_plotly", output_dir))
    return paths


def plot_mixture_histograms(df_flagged: pd.DataFrame, countries, output_dir: str, filename: str):
    """Histogram of log10 salary per country, coloured by the inferred reporting period."""
    countries = [c for c in countries if c in set(df_flagged['country'])]
    if not countries:
        return None

    df_plot = df_flagged[df_flagged['country'].isin(countries)].copy()
    df_plot['log10_salary'] = np.log10(df_plot['salary'].astype(float))
    n_cols = min(2, len(countries))
    n_rows = int(np.ceil(len(countries) / n_cols))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(7 * n_cols, 4.5 * n_rows), squeeze=False)

    for ax, country in zip(axes.ravel(), countries):
        sns.histplot(data=df_plot[df_plot['country'] == country], x='log10_salary', hue='salary_period',
                     hue_order=['annual', 'monthly'], palette=PERIOD_PALETTE, bins=40, ax=ax)
        ax.set_title(country)
        ax.set_xlabel('log10(salary)')
        ax.set_ylabel('Respondents')
    for ax in axes.ravel()[len(countries):]:
        ax.set_visible(False)

    fig.suptitle('Monthly vs Annual Salary Reporting (Gaussian Mixture)', fontsize=16)
    fig.tight_layout()
    return save_matplotlib_figure(fig, filename, output_dir)


def generate_visualizations(base_filename: str, df_current_report: pd.DataFrame, dfs_all_reports: dict,
                            output_charts_dir: str, logger) -> list:
    """
    Acts as a router, calling the appropriate plotting function for the given report.
    Returns the list of saved chart paths (empty when no chart exists for the report).
    """
    PLOT_ROUTER = {
        'q01_indentation_share_by_country': plot_indentation_share_by_country,
        'q02_overall_medians': plot_overall_medians,
        'q03_medians_by_country': plot_tabs_spaces_medians,
        'q04_medians_by_experience': plot_medians_by_experience,
        'q05_medians_by_developer_type': plot_spaces_premium,
        'q06_medians_by_language': plot_spaces_premium,
        'q07_git_share_by_indentation': plot_share_by_indentation,
        'q08_open_source_share_by_indentation': plot_share_by_indentation,
        'q09_medians_by_company_size': plot_tabs_spaces_medians,
        'q09_medians_by_education': plot_spaces_premium,
        'q10_model_coefficients': plot_model_coefficients,
        'q11_spaces_effect_by_country': plot_spaces_effect_by_segment,
    }

    if base_filename not in PLOT_ROUTER or df_current_report.empty:
        return []
    try:
        result = PLOT_ROUTER[base_filename](df_current_report.copy(), output_charts_dir, base_filename)
    except Exception as e:
        logger.error(f"Failed to generate chart for '{base_filename}'. Error: {e}")
        plt.close('all')
        return []
    if result is None:
        return []
    return result if isinstance(result, list) else [result]
