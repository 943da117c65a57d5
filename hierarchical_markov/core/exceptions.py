"""
Custom exception classes for the Hierarchical Markov Chain engine.

This module defines engine-specific exceptions so callers can tell apart
configuration mistakes, bad call arguments, queries against an unfitted
model and numerical blow-ups in the recursive estimators.
"""


class MarkovModelError(Exception):
    """
    Base exception class for all engine-related errors.

    This is the parent class for all custom exceptions in the package,
    allowing for broad exception handling when needed.
    """

    def __init__(self, message: str, component: str = None, details: dict = None):
        """
        Initialize engine error.

        Args:
            message: Human-readable error message
            component: Name of the component where error occurred
            details: Additional error details for debugging
        """
        self.message = message
        self.component = component
        self.details = details or {}

        # Format the full error message
        full_message = message
        if component:
            full_message = f"[{component}] {message}"

        super().__init__(full_message)

    def __str__(self):
        """Return string representation of the error."""
        base_str = super().__str__()
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{base_str} (Details: {details_str})"
        return base_str


class ConfigurationError(MarkovModelError):
    """
    Exception raised when a model configuration is invalid.

    Raised at construction time for unknown enum values (time unit,
    clustering type, transition type, classifier algorithm) and for
    missing or out-of-range parameters. No partial model is created.
    """

    def __init__(self, message: str, parameter: str = None, **kwargs):
        """
        Initialize configuration error.

        Args:
            message: Human-readable error message
            parameter: Name of the offending configuration key
            **kwargs: Additional arguments passed to parent class
        """
        details = kwargs.get('details', {})
        if parameter:
            details['parameter'] = parameter

        kwargs['details'] = details
        super().__init__(message, component="Configuration", **kwargs)


class ArgumentError(MarkovModelError):
    """
    Exception raised when call arguments have the wrong shape or value.

    The model state is left unchanged when this is raised.
    """

    def __init__(self, message: str, argument: str = None, expected=None,
                 actual=None, **kwargs):
        """
        Initialize argument error.

        Args:
            message: Human-readable error message
            argument: Name of the offending argument
            expected: Expected shape, length or range
            actual: Actual shape, length or value
            **kwargs: Additional arguments passed to parent class
        """
        details = kwargs.get('details', {})
        if argument:
            details['argument'] = argument
        if expected is not None:
            details['expected'] = expected
        if actual is not None:
            details['actual'] = actual

        kwargs['details'] = details
        super().__init__(message, component="Arguments", **kwargs)


class NotFittedError(MarkovModelError):
    """
    Exception raised when a query is issued before the model is fitted.
    """

    def __init__(self, message: str, operation: str = None, **kwargs):
        details = kwargs.get('details', {})
        if operation:
            details['operation'] = operation

        kwargs['details'] = details
        super().__init__(message, component="Model", **kwargs)


class NumericInstabilityError(MarkovModelError):
    """
    Exception raised when an update produces non-finite values.

    Once raised by a recursive estimator the instance must not be
    updated any further.
    """

    def __init__(self, message: str, model_type: str = None, **kwargs):
        details = kwargs.get('details', {})
        if model_type:
            details['model_type'] = model_type

        kwargs['details'] = details
        super().__init__(message, component="Numerics", **kwargs)


class MLflowIntegrationError(MarkovModelError):
    """
    Exception raised when MLflow integration fails.

    This exception is raised when MLflow logging or artifact storage
    encounters errors.
    """

    def __init__(self, message: str, operation: str = None, run_id: str = None,
                 **kwargs):
        """
        Initialize MLflow integration error.

        Args:
            message: Human-readable error message
            operation: MLflow operation that failed
            run_id: MLflow run ID if applicable
            **kwargs: Additional arguments passed to parent class
        """
        details = kwargs.get('details', {})
        if operation:
            details['operation'] = operation
        if run_id:
            details['run_id'] = run_id

        kwargs['details'] = details
        super().__init__(message, component="MLflowIntegration", **kwargs)
