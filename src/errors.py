"""Exception hierarchy for nugetferry."""


class NugetFerryError(Exception):
    """Base class for all errors raised by this package."""


class FetchError(NugetFerryError):
    """A network operation kept failing until the retry policy gave up."""

    def __init__(self, description: str, attempts: int, last_error: BaseException):
        super().__init__(
            f"{description} failed after {attempts} attempt(s): {last_error}"
        )
        self.description = description
        self.attempts = attempts
        self.last_error = last_error


class VersionRangeError(NugetFerryError, ValueError):
    """A version constraint string could not be parsed."""


class ManifestError(NugetFerryError):
    """An artifact has no readable .nuspec manifest."""


class ResolutionDepthError(NugetFerryError):
    """The dependency graph is deeper than the configured limit."""


class RepositoryBuildError(NugetFerryError):
    """The indexing tool failed to initialize the feed."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class PackageManagerError(NugetFerryError):
    """A package-manager command returned a failure."""

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


class SelectionError(NugetFerryError, ValueError):
    """An interactive or configured selection was not valid."""
