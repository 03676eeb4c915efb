"""Runtime configuration state management."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from consistent_sampling.sampling.modes import RecordingMode

# Global runtime configuration state
_config = {
    "debug": False,
    "default_recording_mode": None,
}


def set_debug(value: bool) -> None:
    _config["debug"] = value


def get_debug() -> bool:
    return _config["debug"]


def set_default_recording_mode(value: "RecordingMode") -> None:
    _config["default_recording_mode"] = value


def get_default_recording_mode() -> "RecordingMode":
    mode = _config["default_recording_mode"]
    if mode is None:
        from consistent_sampling.sampling.modes import RecordingMode

        return RecordingMode.ANCESTOR_LINK_AND_DISTANCE
    return mode


def reset() -> None:
    """Restore the defaults (used by tests)."""
    _config["debug"] = False
    _config["default_recording_mode"] = None
