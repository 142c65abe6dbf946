"""
Blood Type Compatibility Helper
Determines which donor blood types can donate to which recipient blood types
"""

BLOOD_TYPES = ['O-', 'O+', 'A-', 'A+', 'B-', 'B+', 'AB-', 'AB+']

BLOOD_TYPE_CHOICES = [(blood_type, blood_type) for blood_type in BLOOD_TYPES]

# Donor type -> recipient types it can safely give to
COMPATIBILITY = {
    'O-': ['O-', 'O+', 'A-', 'A+', 'B-', 'B+', 'AB-', 'AB+'],  # Universal donor
    'O+': ['O+', 'A+', 'B+', 'AB+'],
    'A-': ['A-', 'A+', 'AB-', 'AB+'],
    'A+': ['A+', 'AB+'],
    'B-': ['B-', 'B+', 'AB-', 'AB+'],
    'B+': ['B+', 'AB+'],
    'AB-': ['AB-', 'AB+'],
    'AB+': ['AB+'],  # Universal recipient
}

EXACT_MATCH_SCORE = 10
COMPATIBLE_SCORE = 8


def is_valid_blood_type(blood_type):
    return blood_type in COMPATIBILITY


def is_compatible(donor_blood_type, recipient_blood_type):
    """
    Check if donor blood type is compatible with recipient

    Args:
        donor_blood_type: Donor's blood type (e.g., 'O+')
        recipient_blood_type: Recipient's blood type (e.g., 'A+')

    Returns:
        Boolean: True if compatible, False otherwise
    """
    if donor_blood_type not in COMPATIBILITY:
        return False

    return recipient_blood_type in COMPATIBILITY[donor_blood_type]


def get_compatible_donors(recipient_blood_type):
    """
    Get list of blood types that can donate to recipient

    Args:
        recipient_blood_type: Recipient's blood type

    Returns:
        List of compatible donor blood types
    """
    return [
        donor_type
        for donor_type, recipients in COMPATIBILITY.items()
        if recipient_blood_type in recipients
    ]


def get_compatible_recipients(donor_blood_type):
    """Blood types that can receive from donor_blood_type"""
    return list(COMPATIBILITY.get(donor_blood_type, []))


def compatibility_score(donor_type, required_type):
    """
    Score blood compatibility (0-10)
    10 = exact match, 8 = compatible, 0 = incompatible
    """
    if donor_type == required_type and is_valid_blood_type(donor_type):
        return EXACT_MATCH_SCORE
    if is_compatible(donor_type, required_type):
        return COMPATIBLE_SCORE
    return 0
