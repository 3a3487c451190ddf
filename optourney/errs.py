"""Errors that carry an HTTP status code."""


class CustomError(Exception):
    """An error paired with the HTTP status code to report for it."""

    def __init__(self, err, status_code):
        super().__init__(err)
        self.err = err
        self.status_code = status_code