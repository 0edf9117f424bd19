"""Exceptions raised above the transform core."""


class ReprojectionError(Exception):
    """Base class for errors raised by this package."""


class DegenerateProjectionError(ReprojectionError):
    """
    The camera-space depth of a point is zero (or indistinguishable from it),
    so no pixel coordinate is defined.
    """


class CalibrationError(ReprojectionError):
    """Invalid calibration problem (unknown id, duplicate block, bad block size)."""
