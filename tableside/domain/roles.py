PLATFORM_ROLES = {
    "SUPER_ADMIN",
    "COMPANY_ADMIN",
    "SUPPORT_AGENT",
    "SALES",
    "ONBOARDING",
    "ATX_ADMIN",  # legacy
}


def is_platform_role(role: str) -> bool:
    return (role or "").upper() in PLATFORM_ROLES


def is_restaurant_role(role: str) -> bool:
    return not is_platform_role(role)
