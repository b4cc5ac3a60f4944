from __future__ import annotations


class TranscriptWorkerError(RuntimeError):
    stage = "pipeline"


class ConfigurationError(TranscriptWorkerError):
    stage = "configuration"


class AcquisitionError(TranscriptWorkerError):
    stage = "acquisition"


class TranscriptionError(TranscriptWorkerError):
    stage = "transcription"


class SegmentationError(TranscriptWorkerError):
    stage = "segmentation"
