"""
Errors raised by the upload pipeline
"""

USER_FACING_UPLOAD_ERROR = (
    "Could not process the uploaded file. "
    "Please check that the file format is correct and try again."
)


class SheetImportError(Exception):
    """The uploaded file as a whole could not be turned into rows (terminal for the upload)"""

    def __init__(self, user_message: str = USER_FACING_UPLOAD_ERROR, detail: str = ""):
        super().__init__(detail or user_message)
        self.user_message = user_message
        self.detail = detail
