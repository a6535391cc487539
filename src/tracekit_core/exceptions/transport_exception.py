from typing import Optional


class TransportException(Exception):
    """Exception raised when a trace payload cannot be delivered to the collector.

    Raised for network failures, timeouts and non-2xx responses. The tracer
    catches and logs it, so it never reaches the instrumented application.

    Attributes
    ----------
    message : str
        Explanation of the delivery error
    endpoint : str
        The collector endpoint the payload was sent to
    status_code : int, optional
        HTTP status returned by the collector, if a response was received
    details : dict, optional
        Additional details about the error, such as the response body

    Example
    ---------
    try:
        raise TransportException(
            message="Unauthorized",
            endpoint="https://app.tracekit.dev/v1/traces",
            status_code=401,
            details={"response": "invalid api key"}
        )
    except TransportException as e:
        print(e)  # Will print: "Failed sending traces to https://app.tracekit.dev/v1/traces (HTTP 401): Unauthorized"
    """

    def __init__(
        self,
        message: str,
        endpoint: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        """Initialize the transport error.

        Parameters
        ----------
        message : str
            Human-readable error message
        endpoint : str
            The collector endpoint
        status_code : int, optional
            HTTP status code of the response, by default None
        details : dict, optional
            Additional error details, by default None
        """
        self.message = message
        self.endpoint = endpoint
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return a string representation of the error.

        Returns
        -------
        str
            Formatted error message including endpoint and status code
        """
        base_message = f'Failed sending traces to {self.endpoint}'
        if self.status_code is not None:
            base_message = f'{base_message} (HTTP {self.status_code})'
        base_message = f'{base_message}: {self.message}'
        if self.details:
            return f'{base_message}\nDetails: {self.details}'
        return base_message
