"""Target job roles offered for interview practice."""

from enum import Enum


class JobRole(Enum):
    SOFTWARE_ENGINEER = "Software Engineer"
    DATA_SCIENTIST = "Data Scientist"
    PRODUCT_MANAGER = "Product Manager"
    UX_DESIGNER = "UX Designer"
    MARKETING_MANAGER = "Marketing Manager"

    @classmethod
    def from_label(cls, label: str) -> "JobRole":
        """Look up a role by its display label or enum name (case-insensitive)."""
        normalized = label.strip().lower()
        for role in cls:
            if normalized in (role.value.lower(), role.name.lower()):
                return role
        raise ValueError(f"Unknown job role: {label}")
