"""
Input validation and normalization utilities.
Provides helpers and a decorator for validating request data before it
reaches the services.
"""

from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional, Tuple
import functools
import re

from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import ValidationError
from shared_utils.logging_utils import get_scoped_logger


_IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


class InputValidator:
    """Utility class for input validation."""

    @staticmethod
    def validate_non_empty_string(value: str, field_name: str) -> str:
        """Validate non-empty string.

        Args:
            value: String to validate
            field_name: Name of field for error messages

        Returns:
            Stripped string

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string", {"field": field_name})

        if not value.strip():
            raise ValidationError(f"{field_name} cannot be empty", {"field": field_name})

        return value.strip()

    @staticmethod
    def validate_positive_int(value: int, field_name: str, allow_zero: bool = False) -> int:
        """Validate positive integer.

        Raises:
            ValidationError: If value is not an int or below the minimum
        """
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(f"{field_name} must be an integer", {"field": field_name})

        min_val = 0 if allow_zero else 1
        if value < min_val:
            raise ValidationError(f"{field_name} must be >= {min_val}", {"field": field_name})

        return value

    @staticmethod
    def validate_identifier(value: Any, field_name: str) -> str:
        """Validate a record identifier (url-safe, at most 64 characters).

        Raises:
            ValidationError: If the identifier is missing or malformed
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{field_name} is required", {"field": field_name})
        if not isinstance(value, str) or not _IDENTIFIER_PATTERN.match(value.strip()):
            raise ValidationError(f"Invalid {field_name} format", {"field": field_name})
        return value.strip()

    @staticmethod
    def validate_choice(value: str, field_name: str, choices: Iterable[str]) -> str:
        """Validate that value is one of the allowed choices."""
        allowed = list(choices)
        if value not in allowed:
            raise ValidationError(
                f"{field_name} must be one of {allowed}",
                {"field": field_name, "value": value},
            )
        return value

    @staticmethod
    def coerce_optional_int(value: Any, field_name: str) -> Optional[int]:
        """Normalize an optional integer given as int, numeric string or blank.

        Returns:
            The integer, or None for None/empty input

        Raises:
            ValidationError: If a non-blank value is not numeric
        """
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise ValidationError(f"{field_name} must be a number", {"field": field_name})
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            raise ValidationError(f"{field_name} must be a number", {"field": field_name})

    @staticmethod
    def coerce_tags(value: Any) -> List[str]:
        """Normalize tags given as a list or a comma-separated string."""
        if value is None or value == "":
            return []
        if isinstance(value, str):
            items = value.split(",")
        elif isinstance(value, (list, tuple)):
            items = [str(v) for v in value]
        else:
            raise ValidationError("tags must be a list or comma-separated string", {"field": "tags"})
        return [t.strip() for t in items if t and t.strip()]

    @staticmethod
    def parse_optional_datetime(value: Any, field_name: str) -> Optional[datetime]:
        """Parse an ISO-8601 date/datetime; blank values become None.

        Raises:
            ValidationError: If the value is not a valid ISO date
        """
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be an ISO date", {"field": field_name})
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"{field_name} must be an ISO date", {"field": field_name})

    @staticmethod
    def validate_pagination(page: Any, page_size: Any) -> Tuple[int, int]:
        """Validate page/page_size, clamping page_size to the maximum."""
        page = InputValidator.coerce_optional_int(page, "page") or Defaults.PAGE
        page_size = InputValidator.coerce_optional_int(page_size, "pageSize") or Defaults.PAGE_SIZE
        InputValidator.validate_positive_int(page, "page")
        InputValidator.validate_positive_int(page_size, "pageSize")
        return page, min(page_size, Defaults.MAX_PAGE_SIZE)


def validate_input(
    validation_rules: dict[str, Callable],
    scope: str = LogScope.VALIDATION
):
    """Decorator to validate keyword arguments against rules.

    Args:
        validation_rules: Dict mapping param names to validation functions
        scope: Log scope

    Example:
        @validate_input({
            'title': lambda x: InputValidator.validate_non_empty_string(x, 'title'),
        })
        def create_subtask(self, task_id, title):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger = get_scoped_logger(scope)

            try:
                for param_name, validator in validation_rules.items():
                    if param_name in kwargs:
                        kwargs[param_name] = validator(kwargs[param_name])
            except ValidationError as e:
                logger.warning(
                    f"{func.__name__}_validation_failed",
                    func_name=func.__name__,
                    error=str(e)
                )
                raise

            logger.debug(
                f"{func.__name__}_validation_passed",
                func_name=func.__name__,
                validated_params=list(validation_rules.keys())
            )
            return func(*args, **kwargs)

        return wrapper
    return decorator
