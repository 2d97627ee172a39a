class MuxPipelineError(Exception):
    """Base exception for failures raised while serving a mux request."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MuxValidationError(MuxPipelineError):
    """The caller supplied a missing or malformed source."""

    kind = "validation"
    status_code = 400


class StagingError(MuxPipelineError):
    """Reading or writing a staged file failed."""

    kind = "io"
