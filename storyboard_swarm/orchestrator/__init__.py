"""Swarm orchestration: the pipeline, page workers, the batch scheduler,
gateway retry helpers and the structured run log.

The agents import ``retry_policy`` from this package while the pipeline
imports every agent, so ``Orchestrator`` is resolved on first access.
"""

import importlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from storyboard_swarm.orchestrator.pipeline import Orchestrator, PipelineAbortError, PipelineConfig

__all__ = ["Orchestrator", "PipelineAbortError", "PipelineConfig"]


def __getattr__(name: str):
    if name not in __all__:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    pipeline = importlib.import_module("storyboard_swarm.orchestrator.pipeline")
    return getattr(pipeline, name)
