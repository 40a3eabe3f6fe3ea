"""Custom exceptions for the pollypy dispatch engine.

This module defines the exception hierarchy raised when a request cannot be
dispatched. Every fatal condition is raised through the session's assertion
primitive (``Polly.assert_``) so that the enclosing test fails with a
message naming the offending request.

Examples:
    Failing a test run on a missing recording::

        from pollypy.exceptions import MissingRecordingError

        try:
            await adapter.handle_request(raw_request)
        except MissingRecordingError as e:
            pytest.fail(f"No recording for {e.method} {e.url}")

    Catching every pollypy failure::

        from pollypy.exceptions import PollyError

        try:
            await adapter.handle_request(raw_request)
        except PollyError as e:
            logger.error("dispatch.failed", error=e.message)
            raise
"""


class PollyError(Exception):
    """Base exception for all pollypy errors.

    Attributes:
        message: Human-readable error description.

    Examples:
        Raising through the session assertion::

            polly.assert_("Something went wrong.", False)
            # PollyError: [Polly] Something went wrong.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class HookNotImplementedError(PollyError):
    """A transport integration did not override a required hook.

    Raised at call time by the base ``Adapter`` when one of its abstract
    hooks (``on_connect``, ``on_record``, ``string_id``, ...) is invoked.

    Attributes:
        message: Human-readable error description.
        hook: Name of the hook that was never implemented.
    """

    def __init__(self, message: str, hook: str) -> None:
        """Initialize the error with the missing hook name.

        Args:
            message: Human-readable error description.
            hook: Name of the hook that was never implemented.
        """
        super().__init__(message)
        self.hook = hook


class MissingRecordingError(PollyError):
    """No recording exists for a request while replaying.

    Raised when the session is in replay mode, the persister has no entry
    matching the request, and ``record_if_missing`` is disabled. Retrying the
    request cannot succeed; the recording has to be created first.

    Attributes:
        message: Human-readable error description.
        method: HTTP method of the unmatched request.
        url: URL of the unmatched request.

    Examples:
        Handling a missing recording::

            try:
                await adapter.handle_request(raw_request)
            except MissingRecordingError as e:
                print(f"Record {e.method} {e.url} first")
    """

    def __init__(self, message: str, method: str, url: str) -> None:
        """Initialize the error with the request that had no recording.

        Args:
            message: Human-readable error description.
            method: HTTP method of the unmatched request.
            url: URL of the unmatched request.
        """
        super().__init__(message)
        self.method = method
        self.url = url


class UnhandledRequestError(PollyError):
    """Dispatch ran out of decisions for a request.

    The decision order covers every valid session mode, so this only
    surfaces when the session was put into an invalid mode.

    Attributes:
        message: Human-readable error description.
        method: HTTP method of the request.
        url: URL of the request.
    """

    def __init__(self, message: str, method: str, url: str) -> None:
        """Initialize the error with the request that was not handled.

        Args:
            message: Human-readable error description.
            method: HTTP method of the request.
            url: URL of the request.
        """
        super().__init__(message)
        self.method = method
        self.url = url
