# accounts/policy.py
"""
Authorization policy

Every role / ownership / institution check in the API goes through
evaluate(actor, resource, action). Views never inspect roles themselves.

Actions:
    request.create          any authenticated user
    request.view            creator, admin, institution staff, donors who responded
    request.transition      creator, admin, institution staff
    request.view_matches    same as request.transition
    request.respond         donors with a donor profile
    donor.search            admin, staff roles
    inventory.view          admin, any institution staff
    inventory.manage        admin, hospital / blood bank staff of the owning institution
    inventory.sweep         admin, blood bank staff
    notification.send       resource is the notification type
    notification.process    admin
    security.view           admin
    dashboard.view          admin
"""
import logging

logger = logging.getLogger(__name__)

# Notification types institution staff may broadcast
STAFF_NOTIFICATION_TYPES = ('blood_request', 'emergency')

INVENTORY_ROLES = ('hospital_staff', 'blood_bank_staff')


def is_authenticated(actor):
    return actor is not None and getattr(actor, 'is_authenticated', False)


def is_admin(actor):
    return is_authenticated(actor) and actor.is_admin_role


def is_creator(actor, blood_request):
    return blood_request.requester_id is not None and blood_request.requester_id == actor.id


def is_institution_staff(actor, institution_id):
    return actor.is_institution_staff and institution_id is not None and actor.institution_id == institution_id


def has_responded(actor, blood_request):
    return blood_request.responses.filter(donor__user_id=actor.id).exists()


# ============================================
# RULES
# ============================================
def _can_manage_request(actor, blood_request):
    return (
        actor.is_admin_role
        or is_creator(actor, blood_request)
        or is_institution_staff(actor, blood_request.institution_id)
    )


def _can_view_request(actor, blood_request):
    return _can_manage_request(actor, blood_request) or has_responded(actor, blood_request)


def _can_respond(actor, blood_request):
    return actor.role == 'donor' and hasattr(actor, 'donor_profile')


def _can_search_donors(actor, resource):
    return actor.is_admin_role or actor.role in actor.STAFF_ROLES


def _can_view_inventory(actor, institution):
    if actor.is_admin_role:
        return True
    if institution is None:
        return actor.is_institution_staff
    return is_institution_staff(actor, institution.id)


def _can_manage_inventory(actor, institution):
    if actor.is_admin_role:
        return True
    if actor.role not in INVENTORY_ROLES or actor.institution_id is None:
        return False
    return institution is not None and actor.institution_id == institution.id


def _can_sweep_inventory(actor, resource):
    return actor.is_admin_role or actor.role == 'blood_bank_staff'


def _can_send_notification(actor, notification_type):
    if actor.is_admin_role:
        return True
    return notification_type in STAFF_NOTIFICATION_TYPES and actor.is_institution_staff


def _admin_only(actor, resource):
    return actor.is_admin_role


RULES = {
    'request.create': lambda actor, resource: True,
    'request.view': _can_view_request,
    'request.transition': _can_manage_request,
    'request.view_matches': _can_manage_request,
    'request.respond': _can_respond,
    'donor.search': _can_search_donors,
    'inventory.view': _can_view_inventory,
    'inventory.manage': _can_manage_inventory,
    'inventory.sweep': _can_sweep_inventory,
    'notification.send': _can_send_notification,
    'notification.process': _admin_only,
    'security.view': _admin_only,
    'dashboard.view': _admin_only,
}


def evaluate(actor, resource, action):
    """
    Decide whether actor may perform action on resource.

    Unknown actions and anonymous actors are always denied.

    Returns:
        bool: True to allow, False to deny
    """
    if not is_authenticated(actor):
        return False

    rule = RULES.get(action)
    if rule is None:
        logger.warning(f"Policy check for unknown action '{action}' denied")
        return False

    return bool(rule(actor, resource))
