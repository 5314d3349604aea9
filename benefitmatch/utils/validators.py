"""
Utility functions for validating profiles and rule packages
"""
import re
from typing import Any, Dict, List, Sequence

from ..models.rule import RulePackage
from .context import STATE_NAME_TO_CODE


def validate_user_profile_data(profile_data: Dict[str, Any]) -> List[str]:
    """
    Validate user profile data and return list of validation errors

    Args:
        profile_data: Dictionary containing profile data (camelCase keys)

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    # Age validation
    if profile_data.get('age') is not None:
        try:
            age = int(profile_data['age'])
            if age < 0 or age > 150:
                errors.append("Age must be between 0 and 150")
        except (ValueError, TypeError):
            errors.append("Age must be a valid number")

    # Income validation
    if profile_data.get('householdIncome') is not None:
        try:
            income = float(profile_data['householdIncome'])
            if income < 0:
                errors.append("Household income cannot be negative")
        except (ValueError, TypeError):
            errors.append("Household income must be a valid number")

    # Household size validation
    if profile_data.get('householdSize') is not None:
        try:
            size = int(profile_data['householdSize'])
            if size < 1:
                errors.append("Household size must be at least 1")
        except (ValueError, TypeError):
            errors.append("Household size must be a valid number")

    # Date of birth validation
    dob = profile_data.get('dateOfBirth')
    if dob is not None and not re.match(r'^\d{4}-\d{2}-\d{2}', str(dob)):
        errors.append("Date of birth must be formatted as YYYY-MM-DD")

    # State validation (if provided)
    state = profile_data.get('state')
    if state is not None:
        state = str(state).strip()
        known_names = {name.lower() for name in STATE_NAME_TO_CODE}
        if not (len(state) == 2 and state.isalpha()) and state.lower() not in known_names:
            errors.append("State must be a 2-letter code or a full state name")

    return errors


def validate_rule_packages(packages: Sequence[RulePackage]) -> List[str]:
    """
    Check rule packages for problems pydantic cannot see

    Args:
        packages: Parsed rule packages

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []
    seen_packages = set()
    for package in packages:
        package_id = package.metadata.id
        if package_id in seen_packages:
            errors.append(f"Duplicate rule package: {package_id}")
        seen_packages.add(package_id)

        seen_rules = set()
        for rule in package.rules:
            if rule.id in seen_rules:
                errors.append(f"Duplicate rule ID {rule.id} in package {package_id}")
            seen_rules.add(rule.id)
    return errors
