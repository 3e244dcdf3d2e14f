"""
Input validation for kubectl-mapper

Every user-supplied value is checked before any discovery starts; a failure
is a ConfigurationError and aborts the run.
"""

import re
from typing import Iterable, List, Optional

import structlog

logger = structlog.get_logger(__name__)

OUTPUT_FORMATS = ("text", "json", "yaml")


class ConfigurationError(Exception):
    """Invalid invocation; fatal before discovery"""
    pass


class ValidationError(ConfigurationError):
    """Raised when input validation fails"""
    pass


class NamespaceNotFound(ConfigurationError):
    """The explicitly requested namespace does not exist"""

    def __init__(self, namespace: str):
        self.namespace = namespace
        super().__init__(f"namespace '{namespace}' not found")


class InputValidator:
    """Validates user inputs before processing"""

    # RFC 1123 DNS label: lowercase alphanumeric and '-', alphanumeric at both ends
    NAMESPACE_PATTERN = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?$')
    CONTEXT_PATTERN = re.compile(r'^[a-zA-Z0-9]([-a-zA-Z0-9._@:/]*[a-zA-Z0-9])?$')

    MAX_NAMESPACE_LENGTH = 63
    MAX_CONTEXT_LENGTH = 253

    @classmethod
    def validate_namespace(cls, namespace: Optional[str]) -> Optional[str]:
        """Validate a Kubernetes namespace name

        Args:
            namespace: Namespace to validate (None means all namespaces)

        Returns:
            Validated namespace or None

        Raises:
            ValidationError: If namespace is invalid
        """
        if namespace is None:
            return None

        if not namespace:
            raise ValidationError("Namespace cannot be empty string")

        if len(namespace) > cls.MAX_NAMESPACE_LENGTH:
            raise ValidationError(
                f"Namespace too long: {len(namespace)} chars "
                f"(max {cls.MAX_NAMESPACE_LENGTH})"
            )

        if not cls.NAMESPACE_PATTERN.match(namespace):
            raise ValidationError(
                f"Invalid namespace '{namespace}': must match pattern "
                f"{cls.NAMESPACE_PATTERN.pattern}"
            )

        return namespace

    @classmethod
    def validate_namespaces(cls, namespaces: Iterable[str]) -> List[str]:
        return [cls.validate_namespace(namespace) for namespace in namespaces]

    @classmethod
    def validate_context(cls, context: Optional[str]) -> Optional[str]:
        """Validate a kubectl context name

        Raises:
            ValidationError: If context is invalid
        """
        if context is None:
            return None

        if not context:
            raise ValidationError("Context cannot be empty string")

        if len(context) > cls.MAX_CONTEXT_LENGTH:
            raise ValidationError(
                f"Context name too long: {len(context)} chars "
                f"(max {cls.MAX_CONTEXT_LENGTH})"
            )

        if not cls.CONTEXT_PATTERN.match(context):
            raise ValidationError(
                f"Invalid context '{context}': must match pattern "
                f"{cls.CONTEXT_PATTERN.pattern}"
            )

        return context

    @classmethod
    def validate_output_format(cls, format: str) -> str:
        """Validate output format parameter

        Raises:
            ValidationError: If format is not one of text, json, yaml
        """
        if format not in OUTPUT_FORMATS:
            raise ValidationError(
                f"Invalid output format '{format}'. "
                f"Valid options: {', '.join(OUTPUT_FORMATS)}"
            )

        return format

    @classmethod
    def validate_timeout(cls, timeout: float) -> float:
        if timeout <= 0:
            raise ValidationError(f"Timeout must be positive, got {timeout}")
        if timeout > 600:
            raise ValidationError(f"Timeout too large: {timeout}s (max 600s)")
        return timeout

    @classmethod
    def validate_retries(cls, retries: int) -> int:
        if retries < 0:
            raise ValidationError(f"Retries must be >= 0, got {retries}")
        if retries > 10:
            raise ValidationError(f"Too many retries: {retries} (max 10)")
        return retries


def validate_inputs(
    namespace: Optional[str] = None,
    exclude_namespaces: Iterable[str] = (),
    context: Optional[str] = None,
    output_format: str = "text",
) -> tuple:
    """Validate the inputs of the map command

    Returns:
        Tuple of (namespace, exclude_namespaces, context, output_format)

    Raises:
        ValidationError: If any input is invalid
    """
    try:
        return (
            InputValidator.validate_namespace(namespace),
            InputValidator.validate_namespaces(exclude_namespaces),
            InputValidator.validate_context(context),
            InputValidator.validate_output_format(output_format),
        )
    except ValidationError as e:
        logger.error("Input validation failed", error=str(e))
        raise
