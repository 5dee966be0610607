# WORKFLOW: Error taxonomy for package transformations.
# Used by: Analyzer entry points, scenario processors, transformation service, API routers
# Exceptions:
# 1. TransformationError - Base class for every fatal transformation failure
# 2. InputNotFoundError - Source archive does not exist
# 3. MissingRequiredIdentityError - Authority code absent after analysis
#
# Structural ambiguities (duplicate names, several references to one information
# object) are resolved by first/last-wins policies and never raised.


class TransformationError(Exception):
    """Base class for fatal transformation errors."""


class InputNotFoundError(TransformationError, FileNotFoundError):
    """Raised when the source archive cannot be found."""

    def __init__(self, path: str):
        super().__init__(f"Source archive not found: {path}")
        self.path = path


class MissingRequiredIdentityError(TransformationError):
    """Raised when the analysis carries no authority code."""

    def __init__(self, scenario: str):
        super().__init__(
            f"Analysis contains no authority code; {scenario} package cannot be built."
        )
        self.scenario = scenario
