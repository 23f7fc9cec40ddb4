"""Backend API layer -- re-exports the primary client class."""

from campus_session.api.client import CampusClient

__all__ = ["CampusClient"]
