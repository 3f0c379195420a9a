from pincher.domain.models import Clearance, MemberRole


def compare_roles(caller_role: MemberRole, required_role: MemberRole) -> Clearance:
    """
    SUFFICIENT when caller_role is at least as privileged as required_role.
    """
    if caller_role.rank <= required_role.rank:
        return Clearance.SUFFICIENT
    return Clearance.INSUFFICIENT


def has_clearance(caller_role: MemberRole, required_role: MemberRole) -> bool:
    return compare_roles(caller_role, required_role) is Clearance.SUFFICIENT
