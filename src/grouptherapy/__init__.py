"""GroupTherapy Radio - content backend and synchronized radio playback."""

__version__ = "1.0.0"
