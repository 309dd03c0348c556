class RecipesRuntimeError(Exception):
    """Base class for runtime errors in the recipes engine."""

    pass


class RecoverableDependencyError(RecipesRuntimeError):
    """
    Raised by a resource operation that cannot proceed yet because
    information from an ancestor or sibling is not available. The pending
    state is cleared and the resource is retried on a later pass.
    """

    def __init__(self, message: str = "", missing: str = ""):
        self.missing = missing
        super().__init__(message or f"Missing required information: '{missing}'.")


# Name used by resource authors ported from older recipe runtimes.
MissingInfoError = RecoverableDependencyError


class UnknownResourceError(RecipesRuntimeError):
    """Raised when a recipe declares a resource kind that is not registered."""

    def __init__(self, resource_kind: str, identity: str = "unknown"):
        self.resource_kind = resource_kind
        self.identity = identity
        super().__init__(
            f"Resource kind '{resource_kind}' used by node '{identity}' is not registered. "
            "Register it with the ResourceRegistry or expose it via the "
            "'recipes.resources' entry point group."
        )


class CacheReservationError(RecipesRuntimeError):
    """Raised when a second operation tries to reserve an occupied cache key."""

    def __init__(self, key, state: str):
        self.key = key
        super().__init__(f"Cannot reserve cache key {key}: it is already {state}.")


class ConvergenceError(RecipesRuntimeError):
    """Raised when a run exceeds its configured maximum number of passes."""

    def __init__(self, passes: int, outstanding: int):
        self.passes = passes
        self.outstanding = outstanding
        super().__init__(
            f"Recipe did not converge after {passes} evaluation passes "
            f"({outstanding} operation(s) still outstanding)."
        )


class StalledEvaluationError(RecipesRuntimeError):
    """
    Raised when a pass stops on a pending resource although the executor has
    no operation left that could resolve it.
    """

    def __init__(self, pass_number: int, operation_id: str):
        self.pass_number = pass_number
        self.operation_id = operation_id
        super().__init__(
            f"Evaluation pass {pass_number} is waiting on operation "
            f"'{operation_id}', but no operation is outstanding."
        )
