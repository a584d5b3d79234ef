from .build_step import BuildStep, BuildStepsFilteringPipeline

__all__ = ["BuildStep", "BuildStepsFilteringPipeline"]
