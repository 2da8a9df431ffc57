"""NearNeeds: a location-filtered community bulletin board client."""

__version__ = "0.1.0"
