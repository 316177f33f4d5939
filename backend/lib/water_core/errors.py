# backend/lib/water_core/errors.py


class WaterPortalError(Exception):
    """Base class for every error the portal reports to a caller."""
    status_code = 500


class InputError(WaterPortalError):
    """Bad user input, detected before anything is fetched."""
    status_code = 400


class AccessDenied(WaterPortalError):
    status_code = 403


class NotFoundError(WaterPortalError):
    status_code = 404


class NoReadingsError(NotFoundError):
    """A meter exists but has no readings, so no bill can be computed."""

    def __init__(self, meter_id):
        super().__init__(f"No readings available for meter {meter_id}")
        self.meter_id = meter_id


class BackendError(WaterPortalError):
    """
    Any failure of the storage backend. The original message is passed
    through untouched; nothing is retried.
    """
    status_code = 502
