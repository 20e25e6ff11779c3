# -*- coding: utf-8 -*-
"""
Utility functions for plotting and saving figures.
"""
import os
import matplotlib.pyplot as plt
import seaborn as sns
from loguru import logger


def save_matplotlib_figure(fig, base_filename, output_charts_dir):
    """Saves a Matplotlib figure to the designated charts directory and returns its path."""
    os.makedirs(output_charts_dir, exist_ok=True)
    chart_path = os.path.join(output_charts_dir, f"{base_filename}.png")

    fig.savefig(chart_path, bbox_inches='tight', dpi=150)
    plt.close(fig)
    return chart_path


def export_plotly_figure(fig, base_filename, output_charts_dir):
    """
    Saves a Plotly figure as a static PNG, falling back to an HTML file.
    Returns the path that was actually written.
    """
    # Saving to PNG requires the 'kaleido' package: pip install -U kaleido
    os.makedirs(output_charts_dir, exist_ok=True)
    chart_path_png = os.path.join(output_charts_dir, f"{base_filename}.png")

    try:
        fig.write_image(chart_path_png, scale=2)
        return chart_path_png
    except Exception as e:
        logger.warning(f"Failed to save Plotly figure as PNG. Saving as HTML instead. Error: {e}")
        chart_path_html = os.path.join(output_charts_dir, f"{base_filename}.html")
        fig.write_html(chart_path_html)
        return chart_path_html


def format_currency_axis(axis, prefix='$'):
    """Formats a Matplotlib axis with thousands separators and a currency prefix."""
    axis.set_major_formatter(plt.FuncFormatter(lambda val, pos: f'{prefix}{val:,.0f}'))


def create_barplot_with_optional_hue(ax, data, x=None, y=None, hue=None, palette=None, legend=False,
                                     color_when_no_hue='tab:blue', hue_order=None, order=None):
    """
    Draws a barplot, carefully handling the 'hue' parameter to avoid warnings.
    If 'hue' is not provided, a single color is used.
    If 'hue' is provided, a palette is used.
    """
    if hue is None:
        sns.barplot(data=data, x=x, y=y, color=color_when_no_hue, order=order, ax=ax)
        if legend and ax.get_legend() is not None:
            ax.get_legend().remove()
    else:
        sns.barplot(data=data, x=x, y=y, hue=hue, hue_order=hue_order, order=order,
                    palette=(palette or 'tab10'), ax=ax, legend=legend)
