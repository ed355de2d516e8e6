"""Background pipelines driven by the scheduler."""

from .salary_pipeline import (
    SalaryPipeline,
    SalaryPipelineConfig,
    create_salary_pipeline,
)

__all__ = [
    "SalaryPipeline",
    "SalaryPipelineConfig",
    "create_salary_pipeline",
]
