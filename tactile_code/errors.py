"""Exceptions raised inside tactile-code. None of them escape the core components."""


class TactileCodeError(Exception):
    """Base class for package errors"""


class AudioDeviceUnavailable(TactileCodeError):
    """Raised by an audio sink that cannot reach its output device"""
