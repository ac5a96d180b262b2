"""Vision package exports."""

from vision.detections import BoundingBox, Classification, Detection
from vision.pipeline import DetectClassifyService
from vision.providers import CancellationToken, Classifier, Detector, FrameSource
from vision.registry import ProviderRegistry
from vision.settings import ClassifierSettings, PipelineSettings

__all__ = [
    "BoundingBox",
    "CancellationToken",
    "Classification",
    "Classifier",
    "ClassifierSettings",
    "DetectClassifyService",
    "Detection",
    "Detector",
    "FrameSource",
    "PipelineSettings",
    "ProviderRegistry",
]
