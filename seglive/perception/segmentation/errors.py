class SegmentationError(Exception):
    """Base class for all frame segmentation failures."""


class ModelLoadError(SegmentationError):
    """Model resource is missing, unreadable or of an unknown kind."""


class ModelNotLoadedError(ModelLoadError):
    """process() was called before a successful load_model()."""


class InvalidFrameError(SegmentationError, ValueError):
    """Frame buffer violates the layout contract (None, wrong dtype, bad stride...)."""


class InferenceError(SegmentationError):
    """The model failed while running, or produced output of an unexpected shape."""
