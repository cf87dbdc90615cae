# Overview: Lookups over the static permission catalogue.

from .definitions import PERMISSION_DEFINITIONS


def get_all_permission_codes():
    """Every permission code in the catalogue, in definition order."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    return code in get_all_permission_codes()
