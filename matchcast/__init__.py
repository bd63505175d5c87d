"""matchcast: football match tracker with live Server-Sent Events updates."""

__version__ = "0.1.0"
