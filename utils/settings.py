# -*- coding: utf-8 -*-
"""
Configuration models for the analysis projects declared in config.yaml.

The raw YAML stays a plain dictionary for the runner (one entry per project
key); the survey analysis validates its own entry into `SurveyAnalysisConfig`
so every tuning knob has a typed default.
"""
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Literal

import yaml
from pydantic import BaseModel, field_validator

MixturePolicy = Literal["drop", "annualize"]

DEFAULT_COVARIATES = [
    "country",
    "years_coded_job_num",
    "formal_education",
    "company_size",
    "open_source",
    "hobby",
    "uses_git",
]


class SurveyAnalysisConfig(BaseModel):
    description: str = "Developer survey salary analysis"
    input_file: str = "data/survey_results_public.csv"
    analysis_module: str = "analyses.developer_survey"
    output_dir: str = "developer_survey"
    output_root: str = "output"

    min_group_n: int = 30
    alpha: float = 0.05
    top_countries: int = 5
    top_categories: int = 15

    mixture_countries: List[str] = ["India", "Russian Federation", "Ukraine", "Poland"]
    mixture_min_n: int = 50
    mixture_min_separation: float = 0.7
    mixture_policy: MixturePolicy = "drop"
    random_state: int = 42

    regression_covariates: List[str] = DEFAULT_COVARIATES

    export_excel: bool = True
    interactive_charts: bool = True
    render_html: bool = True
    profile_report: bool = True

    @field_validator("alpha")
    @classmethod
    def validate_alpha(cls, v: float) -> float:
        if not 0 < v < 1:
            raise ValueError("alpha must be between 0 and 1")
        return v

    @field_validator("min_group_n", "mixture_min_n", "top_countries", "top_categories")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("mixture_min_separation")
    @classmethod
    def validate_separation(cls, v: float) -> float:
        if v < 0:
            raise ValueError("mixture_min_separation cannot be negative")
        return v

    @property
    def project_dir(self) -> Path:
        return Path(self.output_root) / self.output_dir


def load_config_file(path: str | Path) -> Dict[str, Any]:
    """Reads the whole YAML config; an empty file yields an empty dict."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_project_config(path: str | Path, project_key: str) -> SurveyAnalysisConfig:
    """Loads and validates a single project entry."""
    config = load_config_file(path)
    if project_key not in config:
        raise KeyError(f"Project key '{project_key}' not found in {path}. Available: {list(config.keys())}")
    return SurveyAnalysisConfig.model_validate(config[project_key])
