# order_sync/exceptions.py


class WorkflowApiError(Exception):
    """
    Raised by the API clients when a call never produced an HTTP response
    (connection refused, timeout, DNS...). Carries enough detail for the
    cycle log line.
    """
    def __init__(
        self,
        message: str,
        *,
        api_name: str | None = None,
        api_status: int | None = None,
        raw_response_text: str | None = None,
    ):
        super().__init__(message)
        self.api_name = api_name
        self.api_status = api_status
        self.raw_response_text = raw_response_text
