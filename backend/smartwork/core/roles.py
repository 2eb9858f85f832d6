from typing import Optional

ADMIN = "Admin"
EMPLOYEE = "Employee"

ROLES = (ADMIN, EMPLOYEE)


def normalize_role(role: Optional[str]) -> str:
    """Case-insensitive role name -> canonical spelling. Blank means Employee."""
    if role is None or not role.strip():
        return EMPLOYEE

    value = role.strip()
    for canonical in ROLES:
        if value.lower() == canonical.lower():
            return canonical
    return value


def is_admin(role: Optional[str]) -> bool:
    return normalize_role(role) == ADMIN
