"""Error taxonomy for the sync engine.

Remote failures are raised by the API client as ``PipedriveError``
(see ``pipesheet.api.client``); the errors here cover everything local.
"""


class PipesheetError(Exception):
    """Base exception for pipesheet errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(PipesheetError):
    """No entity/filter configured, or no tracking column on the grid.

    Fatal to the current operation.
    """

    pass


class SchemaExtractionError(PipesheetError):
    """A sample record could not be flattened into columns."""

    pass


class ValueEncodingError(PipesheetError):
    """A grid value could not be converted for the remote API."""

    def __init__(self, message: str, key: str | None = None, value=None):
        self.key = key
        self.value = value
        super().__init__(message)
