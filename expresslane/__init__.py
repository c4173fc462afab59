"""Express-lane pre-booking backend for highway toll plazas."""

__version__ = "1.0.0"
