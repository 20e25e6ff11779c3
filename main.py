# main.py
# -*- coding: utf-8 -*-
"""
Main entry point for the developer survey report.

This script orchestrates the execution of analysis pipelines declared in config.yaml.

Usage:
    # Run the narrative tabs-vs-spaces salary report
    python main.py developer_survey

    # Run a primary, automated EDA (summary files, histograms, JSON report)
    python main.py developer_survey --primary

    # Use another config file
    python main.py developer_survey --config path/to/config.yaml
"""
import sys
import importlib
import argparse
from pathlib import Path

import pandas as pd
import yaml
from pydantic import ValidationError

from utils.primary_analyzer import perform_primary_analysis
from utils.settings import SurveyAnalysisConfig, load_config_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Developer Survey Report Runner",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument(
        "project_key",
        type=str,
        help="The key of the project to run (e.g., 'developer_survey')."
    )
    parser.add_argument(
        "-p", "--primary",
        action="store_true",
        help="If set, runs the primary automated EDA instead of the narrative report."
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default="config.yaml",
        help="Path to the YAML config file (default: config.yaml)."
    )
    return parser


def main(argv=None):
    """
    Orchestrates the execution of a specific analysis pipeline based on CLI arguments.
    """
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding='utf-8')
    args = build_parser().parse_args(argv)

    try:
        config = load_config_file(args.config)
    except FileNotFoundError:
        print(f"FATAL: {args.config} not found. Run from the project root or pass --config.")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"FATAL: {args.config} is not valid YAML. Error: {e}")
        sys.exit(1)

    project_key = args.project_key
    if project_key not in config:
        print(f"FATAL: Project key '{project_key}' not found in {args.config}.")
        print(f"Available projects: {list(config.keys())}")
        sys.exit(1)

    project_config = config[project_key]

    try:
        cfg = SurveyAnalysisConfig.model_validate(project_config)
    except ValidationError as e:
        print(f"FATAL: Invalid configuration for '{project_key}' in {args.config}.\n{e}")
        sys.exit(1)

    if args.primary:
        print(f"--- Initializing PRIMARY EDA for: {project_key} ---")
        if perform_primary_analysis(cfg.model_dump(), project_key) is None:
            print(f"FATAL: Primary EDA could not read '{cfg.input_file}'. Check {args.config}.")
            sys.exit(1)
        print(f"--- Primary EDA for '{project_key}' completed successfully! ---")
        return

    print(f"--- Initializing NARRATIVE REPORT for: {project_key} ---")
    print(f"Description: {cfg.description}")

    input_path = Path(cfg.input_file)
    if not input_path.exists():
        print(f"FATAL: Input file not found at '{input_path}'. Check {args.config}.")
        sys.exit(1)

    try:
        df_raw = pd.read_csv(input_path, low_memory=False)
        print(f"Successfully loaded data from: {input_path}")
    except Exception as e:
        print(f"FATAL: Failed to read the CSV file. Error: {e}")
        sys.exit(1)

    try:
        analysis_module = importlib.import_module(cfg.analysis_module)
        print(f"Successfully imported module: {cfg.analysis_module}")
    except ImportError as e:
        print(f"FATAL: Could not import analysis module '{cfg.analysis_module}'. Error: {e}")
        sys.exit(1)

    try:
        analysis_module.run_analysis(df_raw, cfg)
        print(f"--- Narrative report for '{project_key}' completed successfully! ---")
    except Exception as e:
        print(f"FATAL: An error occurred during the analysis execution. Error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
