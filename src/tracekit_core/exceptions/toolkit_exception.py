from typing import Optional


class ToolkitException(Exception):
    """Exception raised when a TraceKit API call fails.

    Raised for missing credentials, network failures, non-2xx responses and
    responses that are not a JSON object.

    Attributes
    ----------
    message : str
        Explanation of the error
    operation : str
        The API operation that failed (e.g., 'register', 'status')
    status_code : int, optional
        HTTP status returned by TraceKit, if a response was received
    details : dict, optional
        Additional details about the error, such as the response body

    Example
    ---------
    try:
        raise ToolkitException(
            message="API key not set",
            operation="status",
            status_code=401,
        )
    except ToolkitException as e:
        print(e)  # Will print: "TraceKit status failed (HTTP 401): API key not set"
    """

    def __init__(
        self,
        message: str,
        operation: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        self.message = message
        self.operation = operation
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code in (401, 403)

    def __str__(self) -> str:
        base_message = f'TraceKit {self.operation} failed'
        if self.status_code is not None:
            base_message = f'{base_message} (HTTP {self.status_code})'
        base_message = f'{base_message}: {self.message}'
        if self.details:
            return f'{base_message}\nDetails: {self.details}'
        return base_message
