"""Pipeline integrity engine: classification, fingerprints, checks and queues."""

from ptsd.pipeline.classifier import FileClassifier, StageLabel, classify
from ptsd.pipeline.commit import CommitScopeValidator
from ptsd.pipeline.context import ContextBuilder, RegressionDetector
from ptsd.pipeline.hashing import StageHashTracker
from ptsd.pipeline.review import ReviewGate
from ptsd.pipeline.tasks import TaskQueue
from ptsd.pipeline.validator import PipelineValidator

__all__ = [
    "CommitScopeValidator",
    "ContextBuilder",
    "FileClassifier",
    "PipelineValidator",
    "RegressionDetector",
    "ReviewGate",
    "StageHashTracker",
    "StageLabel",
    "TaskQueue",
    "classify",
]
