"""TechTracker: office equipment inventory with an audit trail."""

__version__ = "1.0.0"
