"""Exceptions raised by the draft screen detector.

DetectionError and its subclasses are transient: the current pass is
abandoned and the next screenshot is tried. LayoutError and
PortraitLibraryError are configuration problems and are not caught by the
detection pipeline.
"""


class DetectionError(Exception):
    """A pipeline stage could not produce a result for this screenshot."""


class ScreenshotError(DetectionError):
    """The screenshot could not be decoded."""


class PhaseDetectionError(DetectionError):
    """No pick/ban timer state could be determined."""


class MapDetectionError(DetectionError):
    """The map name could not be isolated or recognized."""


class LayoutError(Exception):
    """The layout definition is missing or malformed."""


class PortraitLibraryError(Exception):
    """The ban portrait directories could not be read or written."""
