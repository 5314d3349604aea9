"""
Utility functions for the benefit eligibility engine
"""

from .context import (
    prepare_data_context,
    format_field_name,
    normalize_state_to_code,
    check_missing_fields
)
from .validators import (
    validate_user_profile_data,
    validate_rule_packages
)

__all__ = [
    "prepare_data_context",
    "format_field_name",
    "normalize_state_to_code",
    "check_missing_fields",
    "validate_user_profile_data",
    "validate_rule_packages"
]
