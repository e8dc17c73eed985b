class EdiProcessingError(Exception):
    """Base class for conditions that stop a generate request and are shown to the user."""


class NoDocumentsError(EdiProcessingError):
    def __init__(self, message: str = "No files uploaded to process."):
        super().__init__(message)


class UnsavedEditsError(EdiProcessingError):
    def __init__(self, message: str = "Please save your selected PO1 lines before generating files."):
        super().__init__(message)


class DocumentReadError(EdiProcessingError):
    """A document could not be loaded. Recorded per file in bulk mode."""

    def __init__(self, file_name: str, reason: str):
        self.file_name = file_name
        self.reason = reason
        super().__init__(f"Error reading file {file_name}: {reason}")
