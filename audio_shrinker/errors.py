from __future__ import annotations


class AudioShrinkerError(Exception):
    """Base class for every error raised by audio_shrinker."""


class ConfigError(AudioShrinkerError):
    """Invalid job configuration; fatal before any file is touched."""


class DiscoveryEmpty(AudioShrinkerError):
    """The input tree holds no audio files. Not a failure."""


class AggregationError(AudioShrinkerError):
    """No file was encoded successfully, so there is nothing to report."""


class PerFileError(AudioShrinkerError):
    """Failure confined to a single file; the run carries on."""

    def __init__(self, source: object, reason: str) -> None:
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class SameFileError(PerFileError):
    pass


class DirectoryCreateError(PerFileError):
    pass


class EncodeFailure(PerFileError):
    pass


class InvalidOptionError(PerFileError):
    pass
