"""Error taxonomy shared by the orchestrator, the coordinator and the engines."""


class RepackerError(Exception):
    """Base class for errors raised by the scan/convert core."""


class InvalidState(RepackerError):
    """Operation not valid in the current session or item state."""


class NotFound(RepackerError):
    """Operation on a path that has no entry in the result log."""


class EngineFailure(RepackerError):
    """The scan or conversion engine reported an error."""


class SevenZipError(EngineFailure):
    """7-Zip could not be run or its listing could not be understood."""


class ConversionFailed(EngineFailure):
    """Repacking a single archive failed; the message is shown next to the item."""
