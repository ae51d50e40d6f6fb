"""
Exception types shared by the data layer and the pages.
"""

from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base class for every error raised by the dashboard."""


class ConfigurationError(DashboardError):
    pass


class DataFetchError(DashboardError):
    def __init__(
        self,
        table: str,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(f"{table}: {message}")
        self.table = table
        self.message = message
        self.code = code
        self.details = details


class MutationError(DashboardError):
    def __init__(self, table: str, message: str) -> None:
        super().__init__(f"{table}: {message}")
        self.table = table
        self.message = message


class UploadError(DashboardError):
    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or "Upload failed")
        self.message = message


class PartialMutationError(MutationError):
    """An earlier write of a multi-step mutation landed and a later one failed."""

    def __init__(self, table: str, message: str, notice: str) -> None:
        super().__init__(table, message)
        self.notice = notice
