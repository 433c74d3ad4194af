"""
Error taxonomy for the PM tracker.

Every class carries the HTTP status it is answered with; the handlers in
``main.create_app`` turn them into ``{"message": ...}`` responses. Per-row import
failures are not exceptions, see ``services.importer.RowOutcome``.
"""


class PmTrackerError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MachineNotFoundError(PmTrackerError):
    status_code = 404
    default_message = "Machine not found"

    def __init__(self, id_msn: str = None, message: str = None):
        self.id_msn = id_msn
        super().__init__(message)


class DuplicateMachineError(PmTrackerError):
    status_code = 400
    default_message = "Machine with this ID already exists"

    def __init__(self, id_msn: str = None, message: str = None):
        self.id_msn = id_msn
        super().__init__(message)


class InvalidImportFileError(PmTrackerError):
    status_code = 400
    default_message = "Invalid import file"


class StoreError(PmTrackerError):
    status_code = 500
    default_message = "Unexpected storage error"


class InvalidFieldError(PmTrackerError):
    status_code = 400
    default_message = "Invalid data"
