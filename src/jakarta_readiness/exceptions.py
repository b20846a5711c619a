"""Custom exceptions for Jakarta Readiness."""


class JakartaReadinessError(Exception):
    """Base exception for Jakarta Readiness."""


class ConfigurationError(JakartaReadinessError):
    """Raised when analysis configuration is missing or invalid."""


class DependencyGraphError(JakartaReadinessError):
    """Raised when the dependency graph cannot be built.

    This is the only fatal error of an analysis run: no partial report is
    produced once it is raised.
    """


class DescriptorNotFoundError(DependencyGraphError):
    """Raised when no build descriptor (pom.xml / build.gradle) can be found."""


class DescriptorParseError(DependencyGraphError):
    """Raised when a build descriptor cannot be read or parsed."""


class DescriptorModelError(DependencyGraphError):
    """Raised when required coordinates are missing from a build descriptor."""


class AnalysisError(JakartaReadinessError):
    """Raised when analysis fails for a reason other than bad input.

    The original exception is always chained as ``__cause__``.
    """


class DiffToolError(JakartaReadinessError):
    """Raised when the external bytecode diff tool fails or produces no usable report."""
