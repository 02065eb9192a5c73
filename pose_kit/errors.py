from __future__ import annotations


class PoseKitError(Exception):
    """Base class for errors raised by `pose_kit`."""


class ConfigurationError(PoseKitError, ValueError):
    """
    Invalid parameters: thresholds out of range, crop larger than the image, bad profiles.
    """


class ModelLoadError(PoseKitError, RuntimeError):
    """
    Model loading or backend/session creation failed. Fatal at startup, never retried.
    """
